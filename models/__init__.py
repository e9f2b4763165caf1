"""
Data models for the habit tracker client.
"""

from .enums import (
    RolloverStage,
    CompletionLevel,
    StoreBackend
)

from .habit import Habit
from .history import CompletionHistory
from .session import SessionLease

__all__ = [
    # Enums
    'RolloverStage',
    'CompletionLevel',
    'StoreBackend',

    # Records
    'Habit',
    'CompletionHistory',
    'SessionLease'
]
