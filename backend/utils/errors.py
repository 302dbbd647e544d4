# backend/utils/errors.py


class InventoryError(Exception):
    """Base class for errors reported to the user by inventory operations."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# Missing or invalid input, raised before anything is written
class ValidationError(InventoryError):
    pass


# A product or staging entry that the request refers to does not exist
class NotFoundError(ValidationError):
    pass


# Network failure, non-success response or unusable storage
class OperationError(InventoryError):
    pass
