"""Exception types shared by the codec, edit client, and session layers."""

from __future__ import annotations


class SnapCleanError(Exception):
    """Base exception for all SnapClean errors."""


class ConfigurationError(SnapCleanError):
    """Raised when a required setting such as the API key is missing."""


class EncodingError(SnapCleanError):
    """Raised when a source image cannot be read or is empty."""


class EditRequestFailed(SnapCleanError):
    """Raised when the edit service call fails for any transport, auth, or parsing reason."""


class NoResultError(EditRequestFailed):
    pass


class SessionBusyError(SnapCleanError):
    """Raised when an upload is attempted while an edit is in flight."""
