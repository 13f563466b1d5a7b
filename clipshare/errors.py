"""Error taxonomy for clip creation and delivery."""


class ClipShareError(Exception):
    pass


class InvalidInputError(ClipShareError, ValueError):
    """Malformed request: empty path, bad time range, bad expiry override."""
    pass


class NotFoundError(ClipShareError):
    """Source media or clip token does not exist (or has expired)."""
    pass


class ExtractionFailedError(ClipShareError):
    """The extraction job did not produce a usable clip."""
    pass


class WorkDirError(ClipShareError, OSError):
    """No writable working directory is available."""
    pass


class DuplicateTokenError(ClipShareError):
    pass
