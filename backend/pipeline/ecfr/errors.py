"""Exceptions raised by the eCFR ingestion pipeline."""


class ECFRError(Exception):
    """Base class for eCFR pipeline errors."""


class TransientFetchError(ECFRError):
    """Upstream fetch kept failing after every retry attempt.

    The caller keeps whatever it had cached; nothing is overwritten.
    """

    def __init__(self, url: str, attempts: int, cause: Exception | None = None):
        self.url = url
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Fetch of {url} failed after {attempts} attempts: {cause}")


class SectionNotFoundError(ECFRError):
    """Upstream has no full text for the requested section on that date."""

    def __init__(self, section: str, date: str | None = None):
        self.section = section
        self.date = date
        where = f" as of {date}" if date else ""
        super().__init__(f"Section {section} not found upstream{where}")


class CacheWriteFailure(ECFRError):
    """The persistent store rejected a write for one section."""

    def __init__(self, section: str, cause: Exception | None = None):
        self.section = section
        self.cause = cause
        super().__init__(f"Could not persist section {section}: {cause}")


class InvalidImagePathError(ECFRError):
    """An image src does not point at the eCFR host."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Not an eCFR image path: {path}")


class ImageNotFoundError(ECFRError):
    """eCFR answered 404 for an image."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Image {path} not found upstream")


class ImageBlockedError(ECFRError):
    """eCFR served an HTML page (bot block) where an image was expected."""

    def __init__(self, path: str, content_type: str):
        self.path = path
        self.content_type = content_type
        super().__init__(f"Image {path} blocked upstream (got {content_type})")
