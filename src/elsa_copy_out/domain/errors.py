"""Domain exceptions for copy out runs."""


class CopyOutError(Exception):
    """Base class for copy out errors."""


class CopyOutValidationError(CopyOutError):
    """Raised when invocation parameters or batching settings are invalid."""


class CopyOutRunNotFoundError(CopyOutError):
    """Raised when a copy out run cannot be found."""


class InvalidRunTransitionError(CopyOutError):
    """Raised when a run is driven through a transition its state does not allow."""


class ManifestError(CopyOutError):
    """Base class for manifest read failures."""


class ManifestNotFoundError(ManifestError):
    """Raised when the manifest object does not exist or cannot be read."""


class ManifestFormatError(ManifestError):
    """Raised when a manifest row does not decode to one bucket/key pair."""


class JobSubmissionError(CopyOutError):
    """Raised when the execution fleet rejects a job submission."""


__all__ = [
    "CopyOutError",
    "CopyOutRunNotFoundError",
    "CopyOutValidationError",
    "InvalidRunTransitionError",
    "JobSubmissionError",
    "ManifestError",
    "ManifestFormatError",
    "ManifestNotFoundError",
]
