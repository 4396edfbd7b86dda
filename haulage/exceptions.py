"""
Error taxonomy shared by the store, the services and the route handlers.

Every error carries the HTTP status the API reports it with, so handlers can
turn any of them into an ``HTTPException`` without a lookup table.
"""
from fastapi import status


class HaulageError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(HaulageError):
    """Malformed, missing or self-referential input"""
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(HaulageError):
    """A referenced user is absent from the store"""
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(HaulageError):
    """Duplicate follow. Reported as 400 like the other client errors."""
    status_code = status.HTTP_400_BAD_REQUEST


class StoreError(HaulageError):
    """The underlying store call failed or timed out"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
