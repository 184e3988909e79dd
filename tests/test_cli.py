from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from fsxmodels import cli
from fsxmodels.artifacts import CATALOG, FailureKind, FetchReport, FetchResult
from fsxmodels.config import Settings
from fsxmodels.constants import EXIT_FAILURE, EXIT_OK, EXIT_USAGE
from fsxmodels.exceptions import ConfigurationError, MountPointError, RetriesExhaustedError
from fsxmodels.mount import Attached, AttachmentTarget
from fsxmodels.stack import StackEndpoint
from fsxmodels.workflow import WorkflowResult

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

ENDPOINT = "fs-0123456789abcdef0.fsx.us-east-1.amazonaws.com"


def _console() -> tuple[Console, io.StringIO]:
    buf = io.StringIO()
    return Console(file=buf, width=160, color_system=None), buf


class FakeWorkflow:
    """Workflow stand-in returning a canned result."""

    instances: list[FakeWorkflow] = []
    outcome: WorkflowResult | Exception | None = None

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.runs: list[tuple[AttachmentTarget, tuple]] = []
        FakeWorkflow.instances.append(self)

    def target(self, endpoint: str, share_name: str | None = None) -> AttachmentTarget:
        return AttachmentTarget(endpoint, share_name or self.settings.share_name, self.settings.mount_point)

    def run(self, target, specs=CATALOG, env=None) -> WorkflowResult:
        self.runs.append((target, tuple(specs)))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        assert self.outcome is not None
        return self.outcome


def _result(*, all_ok: bool, target: AttachmentTarget) -> WorkflowResult:
    results = [FetchResult.ok(spec, size_bytes=10) for spec in CATALOG[:3]]
    if all_ok:
        results.append(FetchResult.ok(CATALOG[3], size_bytes=10))
    else:
        results.append(
            FetchResult.failed(CATALOG[3], "missing HF_TOKEN", "MissingCredential", FailureKind.CONFIGURATION)
        )
    return WorkflowResult(attached=Attached(target=target, attempts=1), report=FetchReport(tuple(results)))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(mount_point=tmp_path / "fsx", guide_dir=tmp_path / "home")


@pytest.fixture
def fake_workflow(monkeypatch, settings):
    FakeWorkflow.instances = []
    FakeWorkflow.outcome = _result(all_ok=False, target=AttachmentTarget(ENDPOINT, "fsx", settings.mount_point))
    monkeypatch.setattr(cli, "Workflow", FakeWorkflow)
    monkeypatch.setattr(cli, "resolve_settings", lambda path=None: settings)
    monkeypatch.setattr(cli, "warn_if_root", lambda: False)
    return FakeWorkflow


class TestUsage:
    def test_run_without_endpoint(self, capsys, fake_workflow):
        assert cli.main(["run"]) == EXIT_USAGE
        assert "FSx DNS name is required" in capsys.readouterr().err
        assert fake_workflow.instances == []

    def test_unknown_command_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["deploy"])
        assert exc_info.value.code == 2

    def test_bad_config(self, monkeypatch, capsys):
        def _broken(path=None):
            raise ConfigurationError("Invalid TOML in fsxmodels.toml")

        monkeypatch.setattr(cli, "resolve_settings", _broken)
        assert cli.main(["list"]) == EXIT_USAGE
        assert "Invalid TOML" in capsys.readouterr().err

    def test_negative_retries_rejected(self, fake_workflow, capsys):
        assert cli.main(["run", ENDPOINT, "--max-retries", "-1"]) == EXIT_USAGE


class TestList:
    def test_lists_catalog(self, fake_workflow):
        console, buf = _console()
        assert cli.main(["list"], console=console) == EXIT_OK
        out = buf.getvalue()
        for spec in CATALOG:
            assert spec.source_identifier in out


class TestRun:
    def test_best_effort_success(self, fake_workflow, settings):
        console, buf = _console()
        assert cli.main(["run", ENDPOINT, "q7okhbev"], console=console) == EXIT_OK
        target, specs = fake_workflow.instances[0].runs[0]
        assert target.source == f"{ENDPOINT}@tcp:/q7okhbev"
        assert specs == CATALOG
        assert "Model Downloads" in buf.getvalue()
        assert (settings.guide_dir / "README_models.md").is_file()

    def test_strict_with_failure(self, fake_workflow):
        console, _ = _console()
        assert cli.main(["run", ENDPOINT, "--strict"], console=console) == EXIT_FAILURE

    def test_strict_all_ok(self, fake_workflow, settings):
        fake_workflow.outcome = _result(all_ok=True, target=AttachmentTarget(ENDPOINT))
        console, _ = _console()
        assert cli.main(["run", ENDPOINT, "--strict"], console=console) == EXIT_OK

    def test_overrides_reach_settings(self, fake_workflow, tmp_path):
        console, _ = _console()
        cli.main(
            ["run", ENDPOINT, "--max-retries", "3", "--retry-delay", "1.5", "--no-fstab",
             "--no-smoke-test", "--owner", "ubuntu", "--no-guide"],
            console=console,
        )
        s = fake_workflow.instances[0].settings
        assert (s.max_retries, s.retry_delay, s.persist, s.smoke_test, s.owner) == (3, 1.5, False, False, "ubuntu")

    def test_only_filters(self, fake_workflow):
        console, _ = _console()
        cli.main(["run", ENDPOINT, "--only", "deepseek-r1", "--only", "gpt4all", "--no-guide"], console=console)
        _, specs = fake_workflow.instances[0].runs[0]
        assert [s.name for s in specs] == ["gpt4all", "deepseek-r1"]

    def test_only_unknown(self, fake_workflow):
        console, buf = _console()
        assert cli.main(["run", ENDPOINT, "--only", "llama"], console=console) == EXIT_USAGE
        assert "Unknown artifact" in buf.getvalue()

    def test_attach_failure(self, fake_workflow):
        fake_workflow.outcome = RetriesExhaustedError(f"{ENDPOINT}@tcp:/fsx", 11)
        console, buf = _console()
        assert cli.main(["run", ENDPOINT], console=console) == EXIT_FAILURE
        assert "after 11 attempts" in buf.getvalue()

    def test_no_guide(self, fake_workflow, settings):
        console, _ = _console()
        cli.main(["run", ENDPOINT, "--no-guide"], console=console)
        assert not (settings.guide_dir / "README_models.md").exists()

    def test_stack_endpoint(self, fake_workflow, monkeypatch):
        class FakeStack:
            def __init__(self, stack_name, region):
                self.stack_name = stack_name

            def endpoint(self):
                return StackEndpoint(self.stack_name, ENDPOINT, "q7okhbev")

        monkeypatch.setattr(cli, "StackOutputs", FakeStack)
        console, _ = _console()
        assert cli.main(["run", "--stack", "models", "--no-guide"], console=console) == EXIT_OK
        target, _ = fake_workflow.instances[0].runs[0]
        assert target.source == f"{ENDPOINT}@tcp:/q7okhbev"


    def test_stack_without_credentials(self, fake_workflow, monkeypatch):
        class NoCredentialsStack:
            def __init__(self, stack_name, region):
                pass

            def endpoint(self):
                raise ConfigurationError("Cannot read stack models in us-east-1: Unable to locate credentials")

        monkeypatch.setattr(cli, "StackOutputs", NoCredentialsStack)
        console, buf = _console()
        assert cli.main(["run", "--stack", "models"], console=console) == EXIT_USAGE
        assert "Unable to locate credentials" in buf.getvalue()
        assert fake_workflow.instances == []

    def test_mount_point_failure(self, fake_workflow):
        fake_workflow.outcome = MountPointError("/fsx", "mkdir: Permission denied")
        console, buf = _console()
        assert cli.main(["run", ENDPOINT], console=console) == EXIT_FAILURE
        assert "Cannot create mount point /fsx" in buf.getvalue()


class TestSummary:
    def test_summary(self, fake_workflow):
        console, buf = _console()
        assert cli.main(["summary"], console=console) == EXIT_OK
        assert "Storage Summary" in buf.getvalue()
