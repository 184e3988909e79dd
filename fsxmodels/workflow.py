"""Attach storage, provision the models tree, fetch every artifact."""

from __future__ import annotations

import os
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from loguru import logger

from fsxmodels.artifacts import CATALOG, ArtifactSpec, FetchReport, SourceKind
from fsxmodels.config import Settings
from fsxmodels.fetchers import Fetcher, default_fetchers
from fsxmodels.layout import DirectoryProvisioner
from fsxmodels.mount import Attached, AttachmentTarget, StorageAttachmentManager
from fsxmodels.orchestrator import FetchOrchestrator
from fsxmodels.retry import Sleeper
from fsxmodels.system import CommandRunner, invoking_user


@dataclass(frozen=True, slots=True)
class WorkflowResult:
    attached: Attached
    report: FetchReport

    def exit_ok(self, strict: bool = False) -> bool:
        """Whether the run counts as a success.

        Attachment and provisioning already succeeded when a result exists;
        fetch failures only count in strict mode.
        """
        return self.report.all_succeeded if strict else True


class Workflow:
    """Builds every component from Settings and runs them in order.

    Components can be replaced, which is how tests drive the workflow
    without touching the real mount table or network.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        runner: CommandRunner | None = None,
        attacher: StorageAttachmentManager | None = None,
        provisioner: DirectoryProvisioner | None = None,
        fetchers: Mapping[SourceKind, Fetcher] | None = None,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self.settings = settings
        owner = settings.owner or invoking_user()
        runner = runner or CommandRunner(sudo=settings.sudo, timeout=settings.command_timeout)
        self.attacher = attacher or StorageAttachmentManager(
            runner, owner=owner, fstab=settings.fstab, sleep=sleep,
        )
        self.provisioner = provisioner or DirectoryProvisioner(mode=settings.mode, owner=owner)
        self.fetchers = fetchers or default_fetchers(
            smoke_test=settings.smoke_test, token_env=settings.token_env,
        )
        self._sleep = sleep

    def target(self, endpoint: str, share_name: str | None = None) -> AttachmentTarget:
        return AttachmentTarget(
            remote_endpoint=endpoint,
            remote_share_name=share_name or self.settings.share_name,
            local_mount_point=self.settings.mount_point,
        )

    def run(
        self,
        target: AttachmentTarget,
        specs: Sequence[ArtifactSpec] = CATALOG,
        env: Mapping[str, str] | None = None,
    ) -> WorkflowResult:
        """Run attachment, provisioning and fetching.

        Raises:
            ConfigurationError: Invalid target or settings.
            AttachError: The share could not be mounted or verified.
            LayoutError: The models tree could not be created.
        """
        s = self.settings
        attached = self.attacher.attach(
            target, s.max_retries, s.retry_delay, persist=s.persist,
        )
        orchestrator = FetchOrchestrator(
            s.models_root,
            self.fetchers,
            concurrency=s.concurrency,
            fetch_retries=s.fetch_retries,
            fetch_retry_delay=s.fetch_retry_delay,
            sleep=self._sleep,
        )
        report = orchestrator.run(specs, os.environ if env is None else env, self.provisioner)
        for result in report.failed:
            logger.warning(f"{result.artifact.name} not downloaded: {result.error_code}")
        return WorkflowResult(attached=attached, report=report)
