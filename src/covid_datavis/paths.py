from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class OutputPaths:
    root: Path
    figures: Path
    tables: Path


def build_output_paths(out_dir: Path) -> OutputPaths:
    paths = OutputPaths(
        root=out_dir,
        figures=out_dir / "figures",
        tables=out_dir / "tables",
    )
    for path in (paths.root, paths.figures, paths.tables):
        path.mkdir(parents=True, exist_ok=True)
    return paths
