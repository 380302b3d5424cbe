"""
Custom exception classes for the application.

Provides structured error handling with specific exception types
for different error scenarios.
"""

from enum import Enum


class ErrorReason(str, Enum):
    """Classified reason reported by the remote retrieval service."""

    INVALID_CREDENTIAL = "invalid_credential"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class AskTheManualError(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


# Credential Exceptions
class CredentialError(AskTheManualError):
    """Base exception for API key problems."""

    pass


class CredentialMissingError(CredentialError):
    """No API key is available."""

    def __init__(self):
        super().__init__("Please select your Gemini API Key first.")


class CredentialInvalidError(CredentialError):
    """The remote service rejected the API key."""

    def __init__(self, details: str | None = None):
        super().__init__(
            "The selected API key is invalid. "
            "Please select a different one and try again.",
            details,
        )


# Remote service Exceptions
class RemoteServiceError(AskTheManualError):
    """A call to the retrieval service failed."""

    def __init__(
        self,
        message: str,
        reason: ErrorReason = ErrorReason.UNKNOWN,
        details: str | None = None,
    ):
        super().__init__(message, details)
        self.reason = reason

    @property
    def is_credential_error(self) -> bool:
        return self.reason is ErrorReason.INVALID_CREDENTIAL


# Store Exceptions
class StoreError(AskTheManualError):
    """Base exception for File Search store handling."""

    pass


class StoreInUseError(StoreError):
    """A store is already active for this session."""

    def __init__(self, handle: str):
        super().__init__(f"A document index is already active: {handle}")


class UnknownStoreError(StoreError):
    """The handle was disposed or never created here."""

    def __init__(self, handle: str):
        super().__init__(f"Unknown or disposed document index: {handle}")


# Pipeline Exceptions
class PipelineError(AskTheManualError):
    """The upload pipeline failed.

    ``handle`` is the store created before the failure, if any, so the
    caller can dispose of it.
    """

    def __init__(
        self,
        step: str,
        cause: Exception,
        handle: str | None = None,
    ):
        super().__init__(f"Upload pipeline failed while {step}", str(cause))
        self.step = step
        self.cause = cause
        self.handle = handle

    @property
    def is_credential_error(self) -> bool:
        return isinstance(self.cause, CredentialInvalidError) or (
            isinstance(self.cause, RemoteServiceError)
            and self.cause.is_credential_error
        )


# Chat Exceptions
class QueryError(AskTheManualError):
    """A chat turn could not be answered."""

    pass


# Sample Exceptions
class SampleFetchError(AskTheManualError):
    """A sample document could not be downloaded."""

    def __init__(self, name: str, details: str | None = None):
        super().__init__(f"Could not fetch the sample document '{name}'", details)
        self.name = name
