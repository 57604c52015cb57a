"""
Error taxonomy shared by the services and the HTTP layer.

Every error carries a list of FieldError so that the app can render all
messages for a form at once.
"""

from typing import List, NamedTuple, Optional


class FieldError(NamedTuple):
    field: Optional[str]
    message: str


class PantryError(Exception):
    status_code = 500

    def __init__(self, messages):
        if isinstance(messages, str):
            messages = [FieldError(None, messages)]
        self.messages: List[FieldError] = list(messages)
        super().__init__("; ".join(m.message for m in self.messages))

    def to_dict(self):
        return {"errors": [{"field": m.field, "message": m.message} for m in self.messages]}


class ValidationError(PantryError):
    status_code = 400


class Conflict(PantryError):
    status_code = 409


class AuthFailure(PantryError):
    status_code = 401

    MESSAGE = "Invalid username or password"

    def __init__(self):
        super().__init__(self.MESSAGE)


class NotFound(PantryError):
    status_code = 404


class StorageError(PantryError):
    status_code = 500

    PUBLIC_MESSAGE = "Something went wrong, please try again later"


class ExternalServiceError(Exception):
    """Product lookup failed; never shown to the user."""


class NotAuthenticated(Exception):
    """Raised by the session gate; the app turns it into a redirect to /login."""
