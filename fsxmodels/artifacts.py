"""Artifact catalog and fetch results."""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum

from fsxmodels.exceptions import ConfigurationError

# =============================================================================
# Artifact Specs
# =============================================================================


class SourceKind(StrEnum):
    """How an artifact is fetched."""

    LIBRARY_MANAGED = "library"
    REGISTRY_PLAIN = "registry"
    REGISTRY_TOKEN_GATED = "registry-token"


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """A model artifact and where it lands under the models directory.

    Args:
        name: Short name used in logs and reports.
        source_kind: Fetch mechanism.
        source_identifier: Model file name (library) or repository id (registry).
        local_subdir: Subdirectory of the models root.
        include: Glob patterns restricting a registry download.
        title: Human-readable name.
    """

    name: str
    source_kind: SourceKind
    source_identifier: str
    local_subdir: str
    include: tuple[str, ...] = ()
    title: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("artifact name must not be empty")
        if not self.source_identifier:
            raise ValueError(f"artifact {self.name!r} has no source identifier")
        if not self.local_subdir or "/" in self.local_subdir or self.local_subdir in (".", ".."):
            raise ValueError(f"artifact {self.name!r} needs a plain subdirectory name")

    @property
    def requires_token(self) -> bool:
        return self.source_kind is SourceKind.REGISTRY_TOKEN_GATED

    @property
    def display_name(self) -> str:
        return self.title or self.name


GPT4ALL = ArtifactSpec(
    name="gpt4all",
    source_kind=SourceKind.LIBRARY_MANAGED,
    source_identifier="Meta-Llama-3-8B-Instruct.Q4_0.gguf",
    local_subdir="gpt4all",
    title="GPT4All Llama3",
)

GPT_OSS_20B = ArtifactSpec(
    name="gpt-oss-20b",
    source_kind=SourceKind.REGISTRY_PLAIN,
    source_identifier="openai/gpt-oss-20b",
    local_subdir="gpt-oss-20b",
    include=("original/*",),
    title="GPT-OSS-20B",
)

DEEPSEEK_R1 = ArtifactSpec(
    name="deepseek-r1",
    source_kind=SourceKind.REGISTRY_PLAIN,
    source_identifier="deepseek-ai/DeepSeek-R1-Distill-Llama-8B",
    local_subdir="deepseek-r1",
    title="DeepSeek R1-Distill-Llama-8B",
)

MISTRAL_7B = ArtifactSpec(
    name="mistral-7b",
    source_kind=SourceKind.REGISTRY_TOKEN_GATED,
    source_identifier="mistralai/Mistral-7B-Instruct-v0.2",
    local_subdir="mistral-7b",
    title="Mistral-7B-Instruct-v0.2",
)

CATALOG: tuple[ArtifactSpec, ...] = (GPT4ALL, GPT_OSS_20B, DEEPSEEK_R1, MISTRAL_7B)


def select(
    names: Sequence[str] | None,
    catalog: tuple[ArtifactSpec, ...] = CATALOG,
) -> tuple[ArtifactSpec, ...]:
    """Filter ``catalog`` to ``names``, keeping catalog order.

    Raises:
        ConfigurationError: If a name is not in the catalog.
    """
    if not names:
        return catalog
    known = {spec.name for spec in catalog}
    unknown = [n for n in names if n not in known]
    if unknown:
        raise ConfigurationError(
            f"Unknown artifact(s): {', '.join(unknown)}. "
            f"Available: {', '.join(sorted(known))}"
        )
    wanted = set(names)
    return tuple(spec for spec in catalog if spec.name in wanted)


# =============================================================================
# Fetch Results
# =============================================================================


class FailureKind(StrEnum):
    """Whether a failed fetch is caller misconfiguration or an operational failure."""

    CONFIGURATION = "configuration"
    OPERATIONAL = "operational"


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Outcome of fetching one artifact. Never mutated after creation."""

    artifact: ArtifactSpec
    succeeded: bool
    size_bytes: int | None = None
    error: str | None = None
    error_code: str | None = None
    failure_kind: FailureKind | None = None
    warnings: tuple[str, ...] = ()

    @classmethod
    def ok(
        cls,
        artifact: ArtifactSpec,
        size_bytes: int | None = None,
        warnings: tuple[str, ...] = (),
    ) -> FetchResult:
        return cls(artifact=artifact, succeeded=True, size_bytes=size_bytes, warnings=warnings)

    @classmethod
    def failed(
        cls,
        artifact: ArtifactSpec,
        error: str,
        error_code: str,
        failure_kind: FailureKind,
    ) -> FetchResult:
        return cls(
            artifact=artifact,
            succeeded=False,
            error=error,
            error_code=error_code,
            failure_kind=failure_kind,
        )


@dataclass(frozen=True, slots=True)
class FetchReport:
    """Ordered results of one orchestrator run."""

    results: tuple[FetchResult, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.results)

    def __iter__(self) -> Iterator[FetchResult]:
        return iter(self.results)

    def __getitem__(self, index: int) -> FetchResult:
        return self.results[index]

    @property
    def succeeded(self) -> tuple[FetchResult, ...]:
        return tuple(r for r in self.results if r.succeeded)

    @property
    def failed(self) -> tuple[FetchResult, ...]:
        return tuple(r for r in self.results if not r.succeeded)

    @property
    def all_succeeded(self) -> bool:
        return all(r.succeeded for r in self.results)

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes or 0 for r in self.results)
