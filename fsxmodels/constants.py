"""Centralized constants for fsxmodels.

Default paths, retry bounds and exit codes used throughout the package.
"""

from __future__ import annotations

from typing import Final

# =============================================================================
# Filesystem Paths
# =============================================================================

FSX_MOUNT_POINT: Final = "/fsx"
MODELS_SUBDIR: Final = "models"
FSTAB_PATH: Final = "/etc/fstab"
DEFAULT_SHARE_NAME: Final = "fsx"
DIRECTORY_MODE: Final = 0o755

# =============================================================================
# Mount Retry
# =============================================================================

MOUNT_MAX_RETRIES: Final = 10
MOUNT_RETRY_DELAY: Final = 30.0
LUSTRE_FSTYPE: Final = "lustre"
FSTAB_OPTIONS: Final = "defaults,_netdev 0 0"

# =============================================================================
# Registry
# =============================================================================

TOKEN_ENV_VAR: Final = "HF_TOKEN"
SMOKE_TEST_PROMPT: Final = "Hello, how are you?"
SMOKE_TEST_MAX_TOKENS: Final = 50

# =============================================================================
# CloudFormation
# =============================================================================

DEFAULT_STACK_NAME: Final = "ai-ml-models-infrastructure"
DEFAULT_REGION: Final = "us-east-1"
STACK_OUTPUT_DNS: Final = "FSxDNSName"
STACK_OUTPUT_MOUNT_NAME: Final = "FSxMountName"

# =============================================================================
# Exit Codes
# =============================================================================

EXIT_OK: Final = 0
EXIT_FAILURE: Final = 1
EXIT_USAGE: Final = 2
