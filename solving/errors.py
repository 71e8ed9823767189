class AssistantError(Exception):
    """Base class for failures that end a single run."""


class DecodingError(AssistantError):
    """Model output missing fields, mistyped, or referencing unknown questions."""


class AuthError(AssistantError):
    """The backend rejected the API key."""


class MissingKeyError(AuthError):
    """The user was asked for an API key and entered nothing."""


class BackendError(AssistantError):
    """Any other backend failure: HTTP error, network error, timeout."""
