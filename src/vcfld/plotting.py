from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import matplotlib.pyplot as plt

logger = logging.getLogger(__name__)


def plot_r2_hist(
    *,
    bin_edges: List[float],
    counts: List[int],
    out_png: str | Path,
    title: str = "r² distribution",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    widths = [bin_edges[i + 1] - bin_edges[i] for i in range(len(counts))]
    centers = [bin_edges[i] + widths[i] / 2.0 for i in range(len(counts))]

    plt.figure()
    plt.bar(centers, counts, width=widths, align="center")
    plt.xlabel("r²")
    plt.ylabel("Locus pairs")
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()


def plot_ld_decay(
    *,
    bin_edges: List[float],
    mean_r2: List[Optional[float]],
    out_png: str | Path,
    title: str = "LD decay",
) -> None:
    """Plot mean r^2 per distance bin; empty bins are left out."""
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    xs: List[float] = []
    ys: List[float] = []
    for i, m in enumerate(mean_r2):
        if m is None:
            continue
        xs.append(0.5 * (bin_edges[i] + bin_edges[i + 1]))
        ys.append(float(m))

    plt.figure()
    plt.plot(xs, ys, marker="o", linestyle="-")
    plt.xlabel("Distance between loci (bp)")
    plt.ylabel("Mean r²")
    plt.ylim(0.0, 1.0)
    plt.title(title)
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
