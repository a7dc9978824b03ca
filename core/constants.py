"""
Core — Constants

Shared constants: activity-log actions and pagination limits.

@file core/constants.py
"""

ACTIVITY_ACTION_CREATE = 'CREATE'
ACTIVITY_ACTION_UPDATE = 'UPDATE'
ACTIVITY_ACTION_DELETE = 'DELETE'
ACTIVITY_ACTION_STATUS_CHANGE = 'STATUS_CHANGE'
ACTIVITY_ACTION_RECONCILE = 'RECONCILE'

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200
