"""Models directory provisioning."""

from __future__ import annotations

import errno
import getpass
import os
import shutil
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from fsxmodels.constants import DIRECTORY_MODE
from fsxmodels.exceptions import LayoutError, LayoutFailure


def _layout_error(path: Path, e: OSError) -> LayoutError:
    if isinstance(e, PermissionError):
        reason = LayoutFailure.PERMISSION_DENIED
    elif e.errno == errno.ENOSPC:
        reason = LayoutFailure.NO_SPACE
    else:
        reason = LayoutFailure.IO
    return LayoutError(str(path), reason, e.strerror or str(e))


class DirectoryProvisioner:
    """Creates the root and one subdirectory per artifact, idempotently.

    Args:
        mode: Permission bits applied to every directory of the tree.
        owner: User (and same-named group) that should own the tree. None
            leaves ownership unchanged.
    """

    def __init__(self, *, mode: int = DIRECTORY_MODE, owner: str | None = None) -> None:
        self.mode = mode
        self.owner = owner

    def ensure_layout(self, root: Path, subdirs: Iterable[str]) -> Path:
        logger.info(f"Creating model directories under {root}")
        paths = [root, *(root / name for name in sorted(set(subdirs)))]

        for path in paths:
            try:
                path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise _layout_error(path, e) from e

        for path in self._tree(root):
            try:
                path.chmod(self.mode)
                if self._needs_chown():
                    shutil.chown(path, user=self.owner, group=self.owner)
            except OSError as e:
                raise _layout_error(path, e) from e
            except LookupError as e:  # unknown user or group
                raise LayoutError(str(path), LayoutFailure.IO, str(e)) from e

        logger.info(f"Model directory structure: {', '.join(self.listing(root))}")
        return root

    @staticmethod
    def listing(root: Path) -> list[str]:
        """Names of the immediate subdirectories of ``root``, sorted."""
        return sorted(p.name for p in root.iterdir() if p.is_dir())

    def _needs_chown(self) -> bool:
        return bool(self.owner) and self.owner != getpass.getuser()

    @staticmethod
    def _tree(root: Path) -> list[Path]:
        tree = [root]
        for dirpath, dirnames, filenames in os.walk(root):
            base = Path(dirpath)
            tree.extend(base / name for name in dirnames)
            tree.extend(base / name for name in filenames)
        return tree
