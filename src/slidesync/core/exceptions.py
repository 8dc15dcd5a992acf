"""
Custom Exceptions for slidesync.

Provides a hierarchy of exceptions for the scene controller, the
presentation driver and the sync engine. Nearly everything here is
recoverable: the engine logs and carries on, or retries later.
"""

from __future__ import annotations

from typing import Optional


class SlideSyncError(Exception):
    """Base exception for all slidesync errors."""

    def __init__(self, message: str, recoverable: bool = True):
        super().__init__(message)
        self.message = message
        self.recoverable = recoverable


# =============================================================================
# OBS (scene controller) Errors
# =============================================================================


class ObsError(SlideSyncError):
    """Base exception for scene-controller errors."""
    pass


class ObsConnectionError(ObsError):
    """Failed to reach OBS, or the link dropped."""

    def __init__(self, endpoint: str, reason: str):
        super().__init__(f"OBS connection to '{endpoint}' failed: {reason}")
        self.endpoint = endpoint
        self.reason = reason


class ObsAuthenticationError(ObsConnectionError):
    """OBS rejected the configured password."""

    def __init__(self, endpoint: str):
        super().__init__(endpoint, "authentication rejected")


class ObsRequestError(ObsError):
    """OBS answered a request with a failure status."""

    def __init__(self, request_type: str, code: int, comment: Optional[str] = None):
        detail = f": {comment}" if comment else ""
        super().__init__(f"OBS request {request_type} failed with code {code}{detail}")
        self.request_type = request_type
        self.code = code
        self.comment = comment


class ObsTimeoutError(ObsError):
    """OBS did not answer a request in time."""

    def __init__(self, request_type: str, timeout_s: float):
        super().__init__(f"OBS request {request_type} timed out after {timeout_s}s")
        self.request_type = request_type
        self.timeout_s = timeout_s


# =============================================================================
# Presentation Errors
# =============================================================================


class PresentationError(SlideSyncError):
    """Base exception for presentation-driver errors."""
    pass


class SlideNotesUnavailableError(PresentationError):
    """Notes of the current slide could not be read."""

    def __init__(self, slide_index: Optional[int], reason: str):
        where = f"slide {slide_index}" if slide_index is not None else "current slide"
        super().__init__(f"Notes unavailable for {where}: {reason}")
        self.slide_index = slide_index


class SlideControlError(PresentationError):
    """The presentation refused to move."""

    def __init__(self, action: str, reason: str):
        super().__init__(f"Presentation action '{action}' failed: {reason}")
        self.action = action


# =============================================================================
# Sync Errors
# =============================================================================


class SyncError(SlideSyncError):
    """Base exception for sync-engine errors."""
    pass


class DirectiveExecutionError(SyncError):
    """A single directive failed mid-batch; the batch continues."""

    def __init__(self, directive: object, cause: BaseException):
        super().__init__(f"Directive {directive!r} failed: {cause}")
        self.directive = directive
        self.cause = cause


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(SlideSyncError):
    """Base exception for configuration errors."""

    def __init__(self, message: str):
        super().__init__(message, recoverable=False)


class DeckError(ConfigError):
    """Invalid or missing deck notes file."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Deck error '{path}': {reason}")
        self.path = path
