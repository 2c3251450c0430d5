"""
Typed errors raised by the checklist engine.

Routers catch these by type and turn them into HTTP responses; nothing
upstream should need to parse a message string.

    ChecklistError
    +-- ColumnDeniedError   role wrote a column it does not own
    +-- ValidationError     bad day/month/year/date or staff/store scoping
    +-- NotFoundError       referenced catalog entry does not exist
    +-- PersistenceError    the store failed; detail stays in the logs
"""
from typing import Iterable


class ChecklistError(Exception):
    code: str = "CHECKLIST_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ColumnDeniedError(ChecklistError):
    code = "COLUMN_DENIED"

    def __init__(self, role: str, denied_columns: Iterable[str]):
        self.role = role
        self.denied_columns = list(denied_columns)
        super().__init__(
            f"Role '{role}' cannot modify column(s): {', '.join(self.denied_columns)}"
        )


class ValidationError(ChecklistError):
    code = "VALIDATION_ERROR"


class NotFoundError(ChecklistError):
    code = "NOT_FOUND"


class PersistenceError(ChecklistError):
    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str = "Failed to save"):
        super().__init__(message)
