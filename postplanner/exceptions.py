"""
Custom exception classes for the post cadence planner.

Parsing and validation of operator input never raise for malformed rows;
they return ordered lists of human-readable messages instead.  The classes
below are raised for programmer errors, configuration problems, and by
callers that prefer exceptions over result objects (see
``MoveResult.raise_for_error``).

Hierarchy:
    Exception
    +-- PlannerBaseError (base for all planner-specific errors)
    |   +-- ParseError (also ValueError)
    |   +-- PastDateError
    |   +-- OverwriteConfirmationRequired
    |   +-- RecordNotFoundError
    |   +-- PersistenceError
    +-- ValidationError (ValueError)
    |   +-- ImportValidationError
    +-- ConfigurationError
        +-- ConfigurationCorruptedError
"""

from datetime import date
from typing import List, Optional


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class PlannerBaseError(Exception):
    """Base exception for all planner-related errors."""

    pass


# =============================================================================
# CORE EXCEPTIONS
# =============================================================================


class ValidationError(ValueError):
    """Raised when input validation fails."""

    pass


class ConfigurationError(Exception):
    """Raised when system configuration is invalid."""

    pass


class ConfigurationCorruptedError(ConfigurationError):
    """Raised when the settings file exists but cannot be parsed."""

    pass


# =============================================================================
# IMPORT EXCEPTIONS
# =============================================================================


class ParseError(PlannerBaseError, ValueError):
    """Raised when a date, time or table row cannot be parsed.

    Attributes:
        row_number: 1-indexed table row (header is row 1), or ``None``
            when the value did not come from a table.
    """

    def __init__(self, message: str, row_number: Optional[int] = None):
        self.row_number = row_number
        super().__init__(message)


class ImportValidationError(ValidationError):
    """Raised when an import is rejected as a whole.

    Attributes:
        issues: Every business-rule violation found, in report order.
    """

    def __init__(self, issues: List[str]):
        self.issues = issues
        super().__init__(
            f"Import rejected with {len(issues)} issue(s): {issues}"
        )


# =============================================================================
# MOVE EXCEPTIONS
# =============================================================================


class PastDateError(PlannerBaseError):
    """Raised when a post would be moved to a date before today.

    Attributes:
        target_date: The rejected target date.
        today: The operational "today" in the business timezone.
    """

    def __init__(self, target_date: date, today: date):
        self.target_date = target_date
        self.today = today
        super().__init__(
            f"Cannot move a post to {target_date.isoformat()}: "
            f"date is before today ({today.isoformat()})"
        )


class OverwriteConfirmationRequired(PlannerBaseError):
    """Advisory signal: the target date already holds a post.

    Not a failure.  Repeat the move with ``overwrite=True`` to replace
    the existing record.
    """

    def __init__(self, target_key: str):
        self.target_key = target_key
        super().__init__(
            f"A post already exists at '{target_key}'. Confirm overwrite to continue."
        )


class RecordNotFoundError(PlannerBaseError):
    """Raised when the record to move does not exist."""

    pass


class PersistenceError(PlannerBaseError):
    """Raised when the external store fails.

    The original error is chained as ``__cause__`` and is surfaced to the
    caller without interpretation.
    """

    pass


# =============================================================================
# PUBLIC API
# =============================================================================

__all__ = [
    # Base
    "PlannerBaseError",
    # Core
    "ValidationError",
    "ConfigurationError",
    "ConfigurationCorruptedError",
    # Import
    "ParseError",
    "ImportValidationError",
    # Move
    "PastDateError",
    "OverwriteConfirmationRequired",
    "RecordNotFoundError",
    "PersistenceError",
]
