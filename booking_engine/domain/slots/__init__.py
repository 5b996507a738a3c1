"""
Slots Domain

- recurrence.py   Recurrence pattern expansion
- generator.py    Definition + exceptions -> concrete UTC slots
- regenerator.py  Incremental re-materialization after changes
- repository.py   Slot store (atomic claim/release, guarded deletes)
"""
