class PageComposerError(Exception):
    """Base exception for the page composer."""


class InvalidTarget(PageComposerError):
    """Raised when a URL is empty or not absolute."""


class FetchFailed(PageComposerError):
    """Raised when a page cannot be downloaded.

    ``status`` is the HTTP status code, or ``None`` for transport failures.
    """

    def __init__(self, status=None, reason=""):
        self.status = status
        self.reason = reason
        if status is not None:
            message = f"unexpected status code {status}"
        else:
            message = f"fetch document: {reason}"
        super().__init__(message)


class ParseFailed(PageComposerError):
    """Raised when a downloaded body cannot be parsed as HTML."""


class ComposerError(PageComposerError):
    """Base class for chat-completion failures."""


class ComposerUnavailable(ComposerError):
    """Raised when no composer endpoint is configured."""

    def __init__(self, message="composer unavailable"):
        super().__init__(message)


class ComposerHTTPError(ComposerError):
    """Non-successful HTTP status returned by the composer endpoint."""

    def __init__(self, status, body=""):
        self.status = status
        self.body = body
        super().__init__(f"composer returned status {status}")


class ComposerTransportError(ComposerError):
    """Raised when the composer endpoint cannot be reached."""


class ComposerResponseError(ComposerError):
    """Raised when the composer response body is not valid JSON."""


class EmptyComposition(ComposerError):
    """Raised when the sanitized composition is empty."""

    def __init__(self, message="composer response empty"):
        super().__init__(message)


class SettingsLoadError(PageComposerError):
    """Raised when persisted settings exist but cannot be read."""


class SettingsPersistFailed(PageComposerError):
    """Raised when settings cannot be written to disk."""
