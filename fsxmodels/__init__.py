"""fsxmodels - Mount FSx for Lustre and download AI/ML models onto it.

Example:

    from pathlib import Path

    from fsxmodels import CATALOG, Settings, Workflow

    workflow = Workflow(Settings(mount_point=Path("/fsx")))
    target = workflow.target("fs-0123456789abcdef0.fsx.us-east-1.amazonaws.com", "q7okhbev")
    result = workflow.run(target, CATALOG)
    for item in result.report:
        print(item.artifact.name, item.succeeded)
"""

# Artifacts
from fsxmodels.artifacts import (
    CATALOG,
    ArtifactSpec,
    FailureKind,
    FetchReport,
    FetchResult,
    SourceKind,
)

# Configuration
from fsxmodels.config import Settings, resolve_settings

# Exceptions
from fsxmodels.exceptions import (
    AttachError,
    ConfigurationError,
    CredentialError,
    FetchError,
    FetchFailedError,
    FsxModelsError,
    LayoutError,
    MissingCredentialError,
    MissingDirectoryError,
    MountPointError,
    RetriesExhaustedError,
    TransientOperationalError,
    VerificationError,
    VerificationFailedError,
)

# Components
from fsxmodels.fetchers import Fetcher, LibraryFetcher, RegistryFetcher
from fsxmodels.layout import DirectoryProvisioner
from fsxmodels.logging import LogConfig
from fsxmodels.mount import Attached, AttachmentTarget, StorageAttachmentManager
from fsxmodels.orchestrator import FetchOrchestrator, Phase
from fsxmodels.retry import retry_call
from fsxmodels.workflow import Workflow, WorkflowResult

__version__ = "0.1.0"

__all__ = [
    "CATALOG",
    "ArtifactSpec",
    "AttachError",
    "Attached",
    "AttachmentTarget",
    "ConfigurationError",
    "CredentialError",
    "DirectoryProvisioner",
    "FailureKind",
    "FetchError",
    "FetchFailedError",
    "FetchOrchestrator",
    "FetchReport",
    "FetchResult",
    "Fetcher",
    "FsxModelsError",
    "LayoutError",
    "LibraryFetcher",
    "LogConfig",
    "MissingCredentialError",
    "MissingDirectoryError",
    "MountPointError",
    "Phase",
    "RegistryFetcher",
    "RetriesExhaustedError",
    "Settings",
    "SourceKind",
    "StorageAttachmentManager",
    "TransientOperationalError",
    "VerificationError",
    "VerificationFailedError",
    "Workflow",
    "WorkflowResult",
    "resolve_settings",
    "retry_call",
]
