"""Error taxonomy for segmentation."""


class SegmentationError(Exception):
    """Base class for segmentation failures."""

    pass


class MissingDocumentTextError(SegmentationError, ValueError):
    """Raised when the primary document text is absent.

    This is the only error that escapes a segmentation call; callers must fix
    the input before retrying.
    """

    pass


class TokenCounterError(SegmentationError):
    """Raised by a token counter backend that cannot produce a count."""

    pass


class NormativeLoadError(SegmentationError):
    """Raised by a normative loader when a document cannot be fetched."""

    def __init__(self, url: str, reason: str = ""):
        self.url = url
        self.reason = reason
        message = f"Failed to load normative {url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
