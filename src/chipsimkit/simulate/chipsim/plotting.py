"""
Diagnostic figures for a simulated reference.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns

logger = logging.getLogger(__name__)


def strongest_site(density: np.ndarray) -> int:
    return int(np.argmax(density))


def plot_density_profile(
    sim,
    path: Union[str, Path],
    center: Optional[int] = None,
    window: int = 1000,
) -> Path:
    """
    Binding-site density and both strand read densities around ``center``.

    Defaults to the position with the highest binding-site density.
    """
    path = Path(path)
    if center is None:
        center = strongest_site(sim.density)
    lo = max(0, center - window // 2)
    hi = min(sim.ref_length, center + window // 2)
    x = np.arange(lo, hi)

    fig, (ax1, ax2) = plt.subplots(2, 1, figsize=(10, 6), sharex=True)

    ax1.plot(x, sim.density[lo:hi], color="black", linewidth=1)
    ax1.set_ylabel("Binding-site density")
    ax1.set_title(f"{sim.chrom}:{lo}-{hi}")

    ax2.plot(x, sim.read_density.forward[lo:hi], color="tab:blue", label="forward")
    ax2.plot(x, sim.read_density.reverse[lo:hi], color="tab:red", label="reverse")
    ax2.set_ylabel("Read density")
    ax2.set_xlabel("Position (bp)")
    ax2.legend(frameon=False)

    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_fragment_kernel(kernel: np.ndarray, path: Union[str, Path], binding_length: int = 0) -> Path:
    path = Path(path)
    offsets = np.arange(kernel.size) + binding_length // 2

    fig, ax = plt.subplots(figsize=(6, 4))
    ax.bar(offsets, kernel, width=1.0, color="tab:gray")
    ax.set_xlabel("Distance from binding site to read start (bp)")
    ax.set_ylabel("Probability")
    sns.despine(ax=ax)

    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_read_histogram(
    reads: pd.DataFrame,
    ref_length: int,
    path: Union[str, Path],
    bins: int = 200,
) -> Path:
    """Read start histogram split by strand; ``reads`` as from reads_to_frame."""
    path = Path(path)

    fig, ax = plt.subplots(figsize=(10, 4))
    if len(reads):
        sns.histplot(
            data=reads,
            x="position",
            hue="strand",
            bins=bins,
            binrange=(0, ref_length),
            element="step",
            ax=ax,
        )
    else:
        logger.warning(f"No reads to plot for {path.name}")
    ax.set_xlim(0, ref_length)
    ax.set_xlabel("Position (bp)")
    ax.set_ylabel("Reads")
    sns.despine(ax=ax)

    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return path
