"""Storage attachment: mount an FSx for Lustre share with bounded retry.

The manager never caches attachment state; every check asks the OS.

Example:
    from pathlib import Path

    from fsxmodels.mount import AttachmentTarget, StorageAttachmentManager
    from fsxmodels.system import CommandRunner

    target = AttachmentTarget(
        remote_endpoint="fs-0123456789abcdef0.fsx.us-east-1.amazonaws.com",
        remote_share_name="q7okhbev",
        local_mount_point=Path("/fsx"),
    )
    manager = StorageAttachmentManager(CommandRunner(), owner="ec2-user")
    attached = manager.attach(target, max_retries=10, retry_delay=30.0)
"""

from __future__ import annotations

import os
import shutil
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from fsxmodels.constants import (
    DEFAULT_SHARE_NAME,
    FSTAB_OPTIONS,
    FSTAB_PATH,
    LUSTRE_FSTYPE,
)
from fsxmodels.exceptions import (
    ConfigurationError,
    MountFailedError,
    MountPointError,
    RetriesExhaustedError,
    VerificationFailedError,
)
from fsxmodels.retry import RetryExhausted, Sleeper, retry_call
from fsxmodels.system import CommandRunner

type MountProbe = Callable[[Path], bool]


@dataclass(frozen=True, slots=True)
class AttachmentTarget:
    """Remote Lustre share and the local path it is mounted on."""

    remote_endpoint: str
    remote_share_name: str = DEFAULT_SHARE_NAME
    local_mount_point: Path = Path("/fsx")

    @property
    def source(self) -> str:
        """Lustre mount source, ``<endpoint>@tcp:/<share>``."""
        return f"{self.remote_endpoint}@tcp:/{self.remote_share_name}"

    def fstab_line(self) -> str:
        return f"{self.source} {self.local_mount_point} {LUSTRE_FSTYPE} {FSTAB_OPTIONS}"


@dataclass(frozen=True, slots=True)
class Attached:
    """Outcome of a successful attach."""

    target: AttachmentTarget
    attempts: int
    already_attached: bool = False
    persisted: bool = False


class StorageAttachmentManager:
    """Mounts an AttachmentTarget, verifies it and records it in fstab."""

    def __init__(
        self,
        runner: CommandRunner,
        *,
        owner: str | None = None,
        fstab: Path = Path(FSTAB_PATH),
        is_mounted: MountProbe = os.path.ismount,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._runner = runner
        self._owner = owner
        self._fstab = fstab
        self._is_mounted = is_mounted
        self._sleep = sleep

    def is_attached(self, target: AttachmentTarget) -> bool:
        return self._is_mounted(target.local_mount_point)

    def attach(
        self,
        target: AttachmentTarget,
        max_retries: int,
        retry_delay: float,
        *,
        persist: bool = True,
    ) -> Attached:
        """Mount ``target``, retrying failed attempts.

        Args:
            target: Share to mount.
            max_retries: Retries after the first attempt.
            retry_delay: Seconds between attempts.
            persist: Append an fstab record when none exists yet.

        Raises:
            ConfigurationError: Endpoint empty or retry bounds negative.
            MountPointError: The mount point directory cannot be created.
            RetriesExhaustedError: All ``max_retries + 1`` attempts failed.
            VerificationFailedError: Mount succeeded but the path is not a mount.
        """
        if not target.remote_endpoint.strip():
            raise ConfigurationError("FSx DNS name not provided")
        if max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {max_retries}")
        if retry_delay < 0:
            raise ConfigurationError(f"retry_delay must be >= 0, got {retry_delay}")

        log = logger.bind(component="mount", source=target.source)
        log.info(f"Setting up FSx Lustre mount at {target.local_mount_point}")
        self._prepare_mount_point(target)

        if self.is_attached(target):
            log.info(f"FSx is already mounted at {target.local_mount_point}")
            return Attached(target=target, attempts=0, already_attached=True)

        log.info(f"Attempting to mount FSx Lustre: {target.remote_endpoint}")

        def _mount_once(attempt: int) -> int:
            result = self._runner.run(
                ["mount", "-t", LUSTRE_FSTYPE, target.source, str(target.local_mount_point)],
                privileged=True,
            )
            if not result.success:
                raise MountFailedError(target.source, result.exit_code, result.stderr.strip())
            return attempt

        try:
            attempts = retry_call(
                _mount_once,
                max_retries=max_retries,
                delay=retry_delay,
                on=MountFailedError,
                sleep=self._sleep,
                label="Mount",
            )
        except RetryExhausted as e:
            log.error(f"Failed to mount FSx after {e.attempts} attempts: {e.last}")
            raise RetriesExhaustedError(target.source, e.attempts) from e.last

        if not self.is_attached(target):
            log.error(f"FSx is not properly mounted at {target.local_mount_point}")
            raise VerificationFailedError(str(target.local_mount_point))

        log.info(f"FSx mounted successfully after {attempts} attempt(s)")
        self._take_ownership(target)
        self._log_capacity(target)

        persisted = self.persist(target) if persist else False
        return Attached(target=target, attempts=attempts, persisted=persisted)

    def persist(self, target: AttachmentTarget) -> bool:
        """Append the fstab record for ``target`` unless one exists.

        A failed append is logged and leaves the mount itself in place.

        Returns:
            True if a line was appended.
        """
        if self._fstab_has(target):
            logger.debug(f"{self._fstab} already references {target.source}")
            return False

        logger.info(f"Adding FSx to {self._fstab} for persistent mounting")
        result = self._runner.run(
            ["tee", "-a", str(self._fstab)],
            privileged=True,
            input=target.fstab_line() + "\n",
        )
        if not result.success:
            logger.warning(
                f"Could not add {target.source} to {self._fstab} ({result.detail}); "
                "the mount will not survive a reboot"
            )
            return False
        return True

    def _fstab_has(self, target: AttachmentTarget) -> bool:
        try:
            content = self._fstab.read_text()
        except FileNotFoundError:
            return False
        return any(
            line.split()[0] == target.source
            for line in content.splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        )

    def _prepare_mount_point(self, target: AttachmentTarget) -> None:
        if target.local_mount_point.is_dir():
            return
        result = self._runner.run(
            ["mkdir", "-p", str(target.local_mount_point)],
            privileged=True,
        )
        if not result.success:
            raise MountPointError(str(target.local_mount_point), result.detail)

    def _take_ownership(self, target: AttachmentTarget) -> None:
        if not self._owner:
            return
        result = self._runner.run(
            ["chown", "-R", f"{self._owner}:{self._owner}", str(target.local_mount_point)],
            privileged=True,
        )
        if not result.success:
            logger.warning(f"Could not chown {target.local_mount_point}: {result.detail}")

    def _log_capacity(self, target: AttachmentTarget) -> None:
        try:
            usage = shutil.disk_usage(target.local_mount_point)
        except OSError as e:
            logger.debug(f"disk usage unavailable for {target.local_mount_point}: {e}")
            return
        gib = 1024**3
        logger.info(
            f"{target.local_mount_point}: {usage.used / gib:.1f} GiB used of "
            f"{usage.total / gib:.1f} GiB ({usage.free / gib:.1f} GiB free)"
        )
