"""State layer.

The ledger is the single source of truth for which vehicles currently
have a scheduled "auction ended" notification.  Only the scheduler is
allowed to mutate it.
"""
