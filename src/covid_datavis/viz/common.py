from __future__ import annotations

from pathlib import Path

import matplotlib.pyplot as plt

DEFAULT_DPI = 150


def save_figure(path: Path, *, dpi: int = DEFAULT_DPI, bottom_margin: float = 0.0) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    plt.tight_layout(rect=(0.0, bottom_margin, 1.0, 1.0))
    plt.savefig(path, dpi=dpi)
    plt.close()
    return path
