from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from fsxmodels.system import CommandResult


class FakeRunner:
    """CommandRunner stand-in that records commands instead of running them.

    ``mount_codes`` is consumed one exit code per mount call; once exhausted
    every further mount succeeds. A successful mount flips ``mounted``.
    Commands named in ``failing`` exit 1 without side effects.
    """

    def __init__(self, mount_codes: Sequence[int] = (), failing: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.calls: list[tuple[str, ...]] = []
        self.inputs: list[str | None] = []
        self.mount_codes = list(mount_codes)
        self.mounted: set[Path] = set()

    def run(
        self,
        args: Sequence[str],
        *,
        privileged: bool = False,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = tuple(args)
        self.calls.append(argv)
        self.inputs.append(input)
        if argv and argv[0] in self.failing:
            return CommandResult(argv, 1, "", f"{argv[0]}: Permission denied")
        match argv:
            case ("mount", *_, mount_point):
                code = self.mount_codes.pop(0) if self.mount_codes else 0
                if code == 0:
                    self.mounted.add(Path(mount_point))
                    return CommandResult(argv, 0)
                return CommandResult(argv, code, "", "mount.lustre: Connection timed out")
            case ("tee", "-a", path):
                with open(path, "a") as f:
                    f.write(input or "")
                return CommandResult(argv, 0, input or "")
            case ("mkdir", "-p", path):
                Path(path).mkdir(parents=True, exist_ok=True)
                return CommandResult(argv, 0)
            case _:
                return CommandResult(argv, 0)

    def count(self, command: str) -> int:
        return sum(1 for c in self.calls if c and c[0] == command)

    def is_mounted(self, path: Path) -> bool:
        return path in self.mounted


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def fstab(tmp_path: Path) -> Path:
    path = tmp_path / "fstab"
    path.write_text("UUID=abcd / xfs defaults 0 0\n")
    return path


@pytest.fixture
def mount_point(tmp_path: Path) -> Path:
    path = tmp_path / "fsx"
    path.mkdir()
    return path


@pytest.fixture
def make_runner():
    def _make(mount_codes: Sequence[int] = (), failing: Sequence[str] = ()) -> FakeRunner:
        return FakeRunner(mount_codes, failing)

    return _make
