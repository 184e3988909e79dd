"""Custom exception hierarchy for fsxmodels.

All fsxmodels-specific exceptions inherit from FsxModelsError, enabling
callers to catch every workflow error with a single except clause.
"""

from __future__ import annotations

from enum import StrEnum


class FsxModelsError(Exception):
    """Base exception for all fsxmodels errors."""


class ConfigurationError(FsxModelsError):
    """Raised for invalid configuration or missing required input."""


class TransientOperationalError(FsxModelsError):
    """Raised for failures that may succeed when retried."""


class VerificationError(FsxModelsError):
    """Raised when an operation reported success but its post-check failed."""


class CredentialError(FsxModelsError):
    """Raised when a required credential is missing or invalid."""


# =============================================================================
# Storage Attachment
# =============================================================================


class AttachError(FsxModelsError):
    """Base exception for storage attachment failures."""


class MountFailedError(TransientOperationalError):
    """Raised when a single mount attempt fails."""

    def __init__(self, source: str, exit_code: int, detail: str = "") -> None:
        self.source = source
        self.exit_code = exit_code
        self.detail = detail
        msg = f"mount of {source} exited with {exit_code}"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class RetriesExhaustedError(AttachError, TransientOperationalError):
    """Raised when every mount attempt failed."""

    def __init__(self, source: str, attempts: int) -> None:
        self.source = source
        self.attempts = attempts
        super().__init__(f"Failed to mount {source} after {attempts} attempts")


class MountPointError(AttachError):
    """Raised when the local mount point directory cannot be created."""

    def __init__(self, mount_point: str, detail: str = "") -> None:
        self.mount_point = mount_point
        msg = f"Cannot create mount point {mount_point}"
        super().__init__(f"{msg}: {detail}" if detail else msg)


class VerificationFailedError(AttachError, VerificationError):
    """Raised when mount returned success but the mount point is not active."""

    def __init__(self, mount_point: str) -> None:
        self.mount_point = mount_point
        super().__init__(f"{mount_point} is not an active mount point after mount")


# =============================================================================
# Directory Layout
# =============================================================================


class LayoutFailure(StrEnum):
    PERMISSION_DENIED = "permission-denied"
    NO_SPACE = "no-space"
    IO = "io"


class LayoutError(FsxModelsError):
    """Raised when the models directory tree cannot be created."""

    def __init__(self, path: str, reason: LayoutFailure, detail: str = "") -> None:
        self.path = path
        self.reason = reason
        msg = f"Cannot prepare {path} ({reason})"
        super().__init__(f"{msg}: {detail}" if detail else msg)


# =============================================================================
# Artifact Fetch
# =============================================================================


class FetchError(FsxModelsError):
    """Base exception for per-artifact fetch failures."""

    code = "FetchError"


class MissingDirectoryError(FetchError, ConfigurationError):
    """Raised when an artifact's target directory does not exist."""

    code = "MissingDirectory"

    def __init__(self, artifact: str, path: str) -> None:
        self.artifact = artifact
        self.path = path
        super().__init__(f"{artifact} directory not found: {path}")


class MissingCredentialError(FetchError, CredentialError):
    """Raised when a token-gated artifact has no token in the environment."""

    code = "MissingCredential"

    def __init__(self, artifact: str, variable: str) -> None:
        self.artifact = artifact
        self.variable = variable
        super().__init__(f"{variable} environment variable not set; required for {artifact}")


class FetchFailedError(FetchError, TransientOperationalError):
    """Raised when the download itself fails."""

    code = "FetchFailed"

    def __init__(self, artifact: str, cause: BaseException) -> None:
        self.artifact = artifact
        self.cause = cause
        super().__init__(f"Download of {artifact} failed: {type(cause).__name__}: {cause}")
