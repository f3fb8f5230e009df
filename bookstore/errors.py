"""Errors raised by the stores, with the HTTP status each one maps to."""

from contextlib import contextmanager

from pymongo.errors import PyMongoError


class BookstoreError(Exception):
    status_code = 500
    message = "Internal Server Error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationRequired(BookstoreError):
    status_code = 401
    message = "Unauthorized"


class InvalidCredentials(BookstoreError):
    status_code = 401
    message = "Invalid username or password"


class NotFound(BookstoreError):
    status_code = 404
    message = "Not found"


class Conflict(BookstoreError):
    status_code = 409
    message = "Already exists"


class ValidationFailure(BookstoreError):
    status_code = 400
    message = "Invalid request"


class EmptyCart(ValidationFailure):
    message = "Your cart is empty."


class InsufficientStock(BookstoreError):
    status_code = 409

    def __init__(self, book_id: str, requested: int, available: int):
        self.book_id = book_id
        self.requested = requested
        self.available = available
        super().__init__(f"Only {max(available, 0)} left in stock for book {book_id}")


class StoreFailure(BookstoreError):
    """A database operation failed. The driver error is kept as ``__cause__``."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"Error during {operation}")


@contextmanager
def store_operation(operation: str):
    """Re-raise driver errors inside the block as :class:`StoreFailure`."""
    try:
        yield
    except PyMongoError as exc:
        raise StoreFailure(operation) from exc
