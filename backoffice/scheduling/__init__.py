"""
backoffice.scheduling — Shift validation and recurrence expansion.
"""
