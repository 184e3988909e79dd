"""Fetch mechanisms, one per SourceKind.

Every fetcher downloads an artifact into an existing destination directory
and returns the warnings it collected. Errors are raised as FetchError
subclasses; the orchestrator turns them into FetchResults.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from loguru import logger

from fsxmodels.artifacts import ArtifactSpec, SourceKind
from fsxmodels.constants import SMOKE_TEST_MAX_TOKENS, SMOKE_TEST_PROMPT, TOKEN_ENV_VAR
from fsxmodels.exceptions import FetchFailedError, MissingCredentialError

type ModelFactory = Callable[[str, Path], Any]
type SnapshotDownload = Callable[..., str]


@runtime_checkable
class Fetcher(Protocol):
    """Protocol for artifact fetch mechanisms."""

    def fetch(
        self,
        spec: ArtifactSpec,
        destination: Path,
        env: Mapping[str, str],
    ) -> tuple[str, ...]:
        """Download ``spec`` into ``destination``.

        Returns:
            Warnings that do not make the fetch a failure.
        """
        ...


# =============================================================================
# Library-managed (GPT4All)
# =============================================================================


def _gpt4all_model(identifier: str, destination: Path) -> Any:
    from gpt4all import GPT4All

    return GPT4All(identifier, model_path=str(destination))


class LibraryFetcher:
    """Downloads a model by instantiating it through its Python library.

    Args:
        model_factory: Builds the model from identifier and destination,
            downloading it when absent. Defaults to gpt4all.GPT4All.
        smoke_test: Run one short generation after the download.
    """

    def __init__(
        self,
        model_factory: ModelFactory = _gpt4all_model,
        *,
        smoke_test: bool = True,
    ) -> None:
        self._model_factory = model_factory
        self.smoke_test = smoke_test

    def fetch(
        self,
        spec: ArtifactSpec,
        destination: Path,
        env: Mapping[str, str],
    ) -> tuple[str, ...]:
        logger.info(f"Downloading {spec.display_name} model...")
        try:
            model = self._model_factory(spec.source_identifier, destination)
        except Exception as e:
            raise FetchFailedError(spec.name, e) from e
        logger.info(f"{spec.display_name} model downloaded to {destination}")

        if not self.smoke_test:
            return ()
        return self._smoke(spec, model)

    @staticmethod
    def _smoke(spec: ArtifactSpec, model: Any) -> tuple[str, ...]:
        logger.info(f"Testing {spec.display_name} model...")
        try:
            with model.chat_session():
                response = model.generate(SMOKE_TEST_PROMPT, max_tokens=SMOKE_TEST_MAX_TOKENS)
        except Exception as e:
            msg = f"smoke test failed: {type(e).__name__}: {e}"
            logger.warning(f"{spec.name}: {msg}")
            return (msg,)
        logger.debug(f"{spec.name} test response: {response}")
        return ()


# =============================================================================
# Registry (Hugging Face Hub)
# =============================================================================


def _snapshot_download(**kwargs: Any) -> str:
    from huggingface_hub import snapshot_download

    return snapshot_download(**kwargs)


class RegistryFetcher:
    """Downloads a repository snapshot from the Hugging Face Hub.

    Token-gated specs read their token from ``env[token_env]`` and fail
    with MissingCredentialError before any network call when it is unset.
    """

    def __init__(
        self,
        download: SnapshotDownload = _snapshot_download,
        *,
        token_env: str = TOKEN_ENV_VAR,
    ) -> None:
        self._download = download
        self.token_env = token_env

    def fetch(
        self,
        spec: ArtifactSpec,
        destination: Path,
        env: Mapping[str, str],
    ) -> tuple[str, ...]:
        kwargs: dict[str, Any] = {
            "repo_id": spec.source_identifier,
            "local_dir": str(destination),
        }
        if spec.include:
            kwargs["allow_patterns"] = list(spec.include)
        if spec.requires_token:
            token = env.get(self.token_env, "").strip()
            if not token:
                raise MissingCredentialError(spec.name, self.token_env)
            kwargs["token"] = token

        logger.info(f"Downloading {spec.display_name} model ({spec.source_identifier})...")
        try:
            self._download(**kwargs)
        except Exception as e:
            raise FetchFailedError(spec.name, e) from e
        return ()


def default_fetchers(
    *,
    smoke_test: bool = True,
    token_env: str = TOKEN_ENV_VAR,
) -> dict[SourceKind, Fetcher]:
    registry = RegistryFetcher(token_env=token_env)
    return {
        SourceKind.LIBRARY_MANAGED: LibraryFetcher(smoke_test=smoke_test),
        SourceKind.REGISTRY_PLAIN: registry,
        SourceKind.REGISTRY_TOKEN_GATED: registry,
    }
