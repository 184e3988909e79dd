"""Local command execution for privileged filesystem operations."""

from __future__ import annotations

import getpass
import os
import shlex
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

# =============================================================================
# Command Result
# =============================================================================


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Immutable result of a local command."""

    args: tuple[str, ...]
    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def detail(self) -> str:
        """stderr of a failed command, or its exit code when stderr is empty."""
        return self.stderr.strip() or f"exit code {self.exit_code}"


# =============================================================================
# Command Runner
# =============================================================================


class CommandRunner:
    """Runs commands, prefixing privileged ones with sudo when not root.

    Failures to launch (binary missing, timeout) are reported as results
    rather than raised, so callers decide whether a failure is retryable.
    """

    def __init__(self, *, sudo: bool = True, timeout: float | None = None) -> None:
        self.sudo = sudo
        self.timeout = timeout

    def _argv(self, args: Sequence[str], privileged: bool) -> list[str]:
        if privileged and self.sudo and os.geteuid() != 0:
            return ["sudo", *args]
        return list(args)

    def run(
        self,
        args: Sequence[str],
        *,
        privileged: bool = False,
        input: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        argv = self._argv(args, privileged)
        logger.debug(f"$ {shlex.join(argv)}")
        try:
            proc = subprocess.run(
                argv,
                input=input,
                capture_output=True,
                text=True,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except FileNotFoundError as e:
            return CommandResult(tuple(argv), 127, "", str(e))
        except subprocess.TimeoutExpired as e:
            return CommandResult(tuple(argv), 124, "", f"timed out after {e.timeout}s")
        return CommandResult(tuple(argv), proc.returncode, proc.stdout, proc.stderr)


def invoking_user() -> str:
    """Name of the non-privileged user behind this process.

    Under sudo this is the user that invoked sudo rather than root.
    """
    return os.environ.get("SUDO_USER") or getpass.getuser()
