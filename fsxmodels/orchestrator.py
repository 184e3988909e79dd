"""Artifact fetch orchestration.

Fetches a fixed, ordered list of artifacts. Per-artifact failures are data:
each one becomes a failed FetchResult and the next artifact is attempted.

Phases:
    IDLE -> PROVISIONING -> FETCHING -> REPORTING -> DONE
"""

from __future__ import annotations

import os
import stat
import time
from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from enum import Enum, auto
from pathlib import Path

from loguru import logger

from fsxmodels.artifacts import ArtifactSpec, FailureKind, FetchReport, FetchResult, SourceKind
from fsxmodels.exceptions import (
    ConfigurationError,
    CredentialError,
    FetchError,
    FetchFailedError,
    MissingDirectoryError,
)
from fsxmodels.fetchers import Fetcher
from fsxmodels.layout import DirectoryProvisioner
from fsxmodels.retry import RetryExhausted, Sleeper, retry_call


class Phase(Enum):
    IDLE = auto()
    PROVISIONING = auto()
    FETCHING = auto()
    REPORTING = auto()
    DONE = auto()


def directory_size(path: Path) -> int:
    """Total size in bytes of the regular files below ``path``.

    Symlinks are not followed. Raises OSError if ``path`` cannot be walked.
    """
    if not path.is_dir():
        raise FileNotFoundError(f"not a directory: {path}")

    def _raise(e: OSError) -> None:
        raise e

    total = 0
    for dirpath, _dirnames, filenames in os.walk(path, onerror=_raise):
        for name in filenames:
            st = os.lstat(os.path.join(dirpath, name))
            if stat.S_ISREG(st.st_mode):
                total += st.st_size
    return total


class FetchOrchestrator:
    """Runs every ArtifactSpec through the fetcher registered for its kind.

    Args:
        root: Models directory; each spec lands in ``root / spec.local_subdir``.
        fetchers: Fetch mechanism per SourceKind.
        concurrency: Number of fetches in flight. 1 keeps the sequential
            baseline; higher values keep result order equal to request order.
        fetch_retries: Retries for operational fetch failures.
        fetch_retry_delay: Seconds between fetch retries.
        measure: Size function for a fetched subdirectory.
        sleep: Sleep function used between retries.
    """

    def __init__(
        self,
        root: Path,
        fetchers: Mapping[SourceKind, Fetcher],
        *,
        concurrency: int = 1,
        fetch_retries: int = 0,
        fetch_retry_delay: float = 0.0,
        measure: Callable[[Path], int] = directory_size,
        sleep: Sleeper = time.sleep,
    ) -> None:
        if concurrency < 1:
            raise ConfigurationError(f"concurrency must be >= 1, got {concurrency}")
        self.root = root
        self._fetchers = dict(fetchers)
        self._concurrency = concurrency
        self._fetch_retries = fetch_retries
        self._fetch_retry_delay = fetch_retry_delay
        self._measure = measure
        self._sleep = sleep
        self.phase = Phase.IDLE
        self.history: list[Phase] = [Phase.IDLE]

    def _enter(self, phase: Phase) -> None:
        logger.debug(f"orchestrator: {self.phase.name} -> {phase.name}")
        self.phase = phase
        self.history.append(phase)

    def run(
        self,
        specs: Sequence[ArtifactSpec],
        env: Mapping[str, str],
        provisioner: DirectoryProvisioner,
    ) -> FetchReport:
        """Provision the directory layout, then fetch every spec.

        Raises:
            LayoutError: If the directory tree cannot be created.
        """
        self._enter(Phase.PROVISIONING)
        provisioner.ensure_layout(self.root, [spec.local_subdir for spec in specs])
        return self.fetch_all(specs, env)

    def fetch_all(self, specs: Sequence[ArtifactSpec], env: Mapping[str, str]) -> FetchReport:
        """Fetch ``specs`` in order and return one result per spec."""
        self._enter(Phase.FETCHING)
        total = len(specs)
        logger.info(f"Starting model downloads ({total} artifacts)")

        def _one(indexed: tuple[int, ArtifactSpec]) -> FetchResult:
            index, spec = indexed
            logger.info(f"Fetching artifact {index}/{total}: {spec.name}")
            return self.fetch_one(spec, env)

        items = list(enumerate(specs, start=1))
        if self._concurrency == 1 or total <= 1:
            results = [_one(item) for item in items]
        else:
            with ThreadPoolExecutor(max_workers=self._concurrency, thread_name_prefix="fetch") as pool:
                results = list(pool.map(_one, items))

        self._enter(Phase.REPORTING)
        report = FetchReport(tuple(results))
        logger.info(f"Downloads finished: {len(report.succeeded)} succeeded, {len(report.failed)} failed")
        self._enter(Phase.DONE)
        return report

    def fetch_one(self, spec: ArtifactSpec, env: Mapping[str, str]) -> FetchResult:
        """Fetch a single spec. Every error it raises becomes a failed result."""
        destination = self.root / spec.local_subdir
        log = logger.bind(artifact=spec.name)
        try:
            if not destination.is_dir():
                raise MissingDirectoryError(spec.display_name, str(destination))
            fetcher = self._fetchers.get(spec.source_kind)
            if fetcher is None:
                raise ConfigurationError(f"No fetcher registered for {spec.source_kind}")
            warnings = self._fetch_with_retry(fetcher, spec, destination, env)
        except FetchError as e:
            if isinstance(e, ConfigurationError | CredentialError):
                kind = FailureKind.CONFIGURATION
            else:
                kind = FailureKind.OPERATIONAL
            log.error(f"{spec.name}: {type(e).__name__} ({kind}): {e}")
            return FetchResult.failed(spec, str(e), e.code, kind)
        except ConfigurationError as e:
            log.error(f"{spec.name}: {type(e).__name__}: {e}")
            return FetchResult.failed(spec, str(e), "Configuration", FailureKind.CONFIGURATION)
        except Exception as e:
            # Fetchers outside this package may raise anything
            log.opt(exception=e).error(f"{spec.name}: unexpected {type(e).__name__}: {e}")
            return FetchResult.failed(
                spec, f"{type(e).__name__}: {e}", FetchFailedError.code, FailureKind.OPERATIONAL,
            )

        size = self._size(destination)
        log.info(f"{spec.display_name} model download completed")
        return FetchResult.ok(spec, size_bytes=size, warnings=warnings)

    def _fetch_with_retry(
        self,
        fetcher: Fetcher,
        spec: ArtifactSpec,
        destination: Path,
        env: Mapping[str, str],
    ) -> tuple[str, ...]:
        if self._fetch_retries == 0:
            return fetcher.fetch(spec, destination, env)
        try:
            return retry_call(
                lambda _attempt: fetcher.fetch(spec, destination, env),
                max_retries=self._fetch_retries,
                delay=self._fetch_retry_delay,
                on=FetchFailedError,
                sleep=self._sleep,
                label=f"Fetch {spec.name}",
            )
        except RetryExhausted as e:
            raise e.last from None

    def _size(self, destination: Path) -> int | None:
        try:
            return self._measure(destination)
        except OSError as e:
            logger.warning(f"Could not measure {destination}: {e}")
            return None
