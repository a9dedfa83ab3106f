"""
Scheduling domain - availability and conflict-free booking

Pure parts (intervals, weekly_schedule, resolver, slots) never touch the
database; service.py owns the booking transaction.
"""
