class LibraryError(Exception):
    """Base exception for book rental errors."""


class ValidationError(LibraryError):
    """Malformed input: blank required field, bad quantity."""


class ConflictError(LibraryError):
    """Duplicate ISBN or email."""


class NotFoundError(LibraryError):
    """Unknown book, member or rental id."""


class OutOfStockError(LibraryError):
    """No available copies left."""


class BorrowLimitError(LibraryError):
    """Member already holds the maximum number of rentals."""


class SuspendedError(LibraryError):
    """Member is suspended from renting."""


class OverdueBlockError(LibraryError):
    """Member has an overdue rental."""


class AlreadyReturnedError(LibraryError):
    """Rental was already returned."""


class ExtensionLimitError(LibraryError):
    """Rental was extended the maximum number of times."""
