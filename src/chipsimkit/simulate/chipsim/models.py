"""
Core data structures.

Regions and read positions are immutable once produced; densities are plain
float arrays and are treated as read-only by every stage downstream of the
one that created them.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np


class RegionKind(Enum):
    """Hidden state of the region Markov chain."""
    BINDING = "Binding"
    BACKGROUND = "Background"


# =============================================================================
# Regions
# =============================================================================

@dataclass(frozen=True)
class Region:
    """A contiguous labelled interval [start, start + length)."""
    kind: RegionKind
    start: int
    length: int
    weight: float

    @property
    def end(self) -> int:
        return self.start + self.length

    @property
    def midpoint(self) -> int:
        """Position of a binding spike: floor of the midpoint offset."""
        return self.start + self.length // 2


# =============================================================================
# Densities and read positions
# =============================================================================

@dataclass
class ReadDensityPair:
    """Forward and reverse strand read-start densities."""
    forward: np.ndarray
    reverse: np.ndarray

    def __post_init__(self):
        if self.forward.shape != self.reverse.shape:
            raise ValueError(
                f"Strand densities differ in shape: "
                f"{self.forward.shape} vs {self.reverse.shape}"
            )

    def __len__(self) -> int:
        return int(self.forward.size)


@dataclass(frozen=True)
class ReadPositions:
    """
    Sampled read anchors (0-based).

    Forward positions are the leftmost base of a read extending to the right;
    reverse positions are the rightmost base of a read extending to the left.
    """
    forward: np.ndarray
    reverse: np.ndarray
    n_filtered: int = 0

    @property
    def total(self) -> int:
        return int(self.forward.size + self.reverse.size)
