"""Domain packages (availability, schedule exceptions, slots, bookings)"""
