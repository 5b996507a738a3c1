"""
Availability Domain

An owner's weekly schedule template: per-weekday time blocks, timezone,
booking window, effective date range, form and billing config. Creating,
updating, pausing or deleting a definition triggers slot regeneration.
"""
