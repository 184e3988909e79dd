"""Run summary rendered with rich."""

from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from pathlib import Path

from rich.console import Console, Group, RenderableType
from rich.table import Table
from rich.text import Text

from fsxmodels.artifacts import ArtifactSpec, FailureKind, FetchReport
from fsxmodels.orchestrator import directory_size

_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def format_bytes(size: int | None) -> str:
    if size is None:
        return "\u2013"
    value = float(size)
    for unit in _UNITS:
        if value < 1024 or unit == _UNITS[-1]:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    raise AssertionError("unreachable")


def _status(result_ok: bool, kind: FailureKind | None) -> Text:
    if result_ok:
        return Text("ok", style="green bold")
    label = "config error" if kind is FailureKind.CONFIGURATION else "failed"
    return Text(label, style="red bold")


def render_report(report: FetchReport, root: Path) -> RenderableType:
    """Per-artifact status table for one orchestrator run."""
    table = Table(
        title="Model Downloads\n",
        title_style="bold",
        title_justify="center",
        show_edge=False,
        box=None,
        padding=(0, 2),
        header_style="bold bright_black",
    )
    table.add_column("Model")
    table.add_column("Status")
    table.add_column("Size", justify="right")
    table.add_column("Detail", style="bright_black")

    for result in report:
        detail = result.error or "; ".join(result.warnings)
        table.add_row(
            Text(result.artifact.display_name),
            _status(result.succeeded, result.failure_kind),
            Text(format_bytes(result.size_bytes)),
            Text(detail),
        )

    totals = Text()
    totals.append(f"{len(report.succeeded)} succeeded", style="green bold")
    totals.append(" \u00b7 ", style="color(240)")
    totals.append(f"{len(report.failed)} failed", style="red bold")
    totals.append(f"  Models downloaded to {root}", style="bright_black")
    return Group(Text(""), table, Text(""), totals)


def render_usage(
    specs: Sequence[ArtifactSpec],
    root: Path,
    mount_point: Path,
    measure: Callable[[Path], int] = directory_size,
) -> RenderableType:
    """On-disk sizes per model, total usage and filesystem capacity."""
    overview = Table(
        title="Storage Summary\n",
        title_style="bold",
        title_justify="center",
        show_header=False,
        show_edge=False,
        box=None,
        padding=(0, 2),
    )
    overview.add_column("key", style="bright_black", min_width=12)
    overview.add_column("value")

    for spec in specs:
        try:
            size = format_bytes(measure(root / spec.local_subdir))
        except OSError:
            size = "not found"
        overview.add_row(spec.local_subdir, Text(size))

    try:
        total = format_bytes(measure(root))
    except OSError:
        total = "directory not found"
    overview.add_row("Total", Text(total, style="bold"))

    try:
        usage = shutil.disk_usage(mount_point)
        fs = (
            f"{format_bytes(usage.used)} used of {format_bytes(usage.total)} "
            f"({format_bytes(usage.free)} free)"
        )
    except OSError:
        fs = "not mounted"
    overview.add_row("Filesystem", Text(fs))
    return Group(Text(""), overview, Text(""))


def render_next_steps(guide_dir: Path | None) -> RenderableType:
    steps = Text()
    steps.append("Next steps:\n", style="green bold")
    if guide_dir is not None:
        steps.append(f"1. Read the documentation: cat {guide_dir / 'README_models.md'}\n")
        steps.append(f"2. Test the models: python3 {guide_dir / 'model_examples.py'}\n")
        steps.append("3. Start using your AI/ML models!")
    else:
        steps.append("Start using your AI/ML models!")
    return steps


def print_summary(
    console: Console,
    report: FetchReport | None,
    specs: Sequence[ArtifactSpec],
    root: Path,
    mount_point: Path,
    guide_dir: Path | None = None,
) -> None:
    if report is not None:
        console.print(render_report(report, root))
    console.print(render_usage(specs, root, mount_point))
    console.print(render_next_steps(guide_dir))
