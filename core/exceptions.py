# core/exceptions.py

from datetime import date
from typing import List, Optional


class HabitTrackerError(Exception):
    """Base error for the habit tracker."""


class AuthError(HabitTrackerError):
    """No session, expired session or rejected credentials."""


class StoreError(HabitTrackerError):
    """Network or backend failure while reading or writing records."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RolloverError(HabitTrackerError):
    """
    Rollover did not reach the committed stage.

    ``stage`` is the last stage that completed before the failure and
    ``cause`` is the AuthError/StoreError that stopped it.
    """

    def __init__(self, message: str, stage: str, cause: Optional[Exception] = None):
        super().__init__(message)
        self.stage = stage
        self.cause = cause


class PartialRolloverError(RolloverError):
    """Some but not all of the backfill days were written."""

    def __init__(self, message: str, stage: str, written_days: List[date],
                 cause: Optional[Exception] = None):
        super().__init__(message, stage, cause)
        self.written_days = list(written_days)
