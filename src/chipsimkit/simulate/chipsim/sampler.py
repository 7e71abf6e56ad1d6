"""
Read position sampling.

Each strand density is used as an unnormalized probability mass function
over reference positions. Positions whose read would run off the reference
are dropped.
"""

import logging
from typing import Tuple

import numpy as np

from .errors import NumericError, ParameterError
from .models import ReadDensityPair, ReadPositions

logger = logging.getLogger(__name__)


def density_to_pmf(values: np.ndarray, strand: str) -> np.ndarray:
    values = np.asarray(values, dtype=float)
    total = values.sum()
    if not np.isfinite(total) or total <= 0 or (values < 0).any():
        raise NumericError(
            "Strand density has no usable probability mass",
            stage="reads",
            context={"strand": strand, "total": float(total), "length": values.size},
        )
    return values / total


class ReadSampler:
    """Categorical sampling of read anchors, independent and with replacement."""

    def __init__(self, read_length: int = 36, strand_prob: float = 0.5):
        if read_length <= 0:
            raise ParameterError(
                "read_length must be > 0", stage="reads", context={"read_length": read_length}
            )
        if not 0 <= strand_prob <= 1:
            raise ParameterError(
                "strand_prob must be in [0, 1]",
                stage="reads",
                context={"strand_prob": strand_prob},
            )
        self.read_length = int(read_length)
        self.strand_prob = float(strand_prob)

    @classmethod
    def from_config(cls, config) -> "ReadSampler":
        return cls(read_length=config.reads.read_length, strand_prob=config.reads.strand_prob)

    def split_reads(self, n_reads: int, rng: np.random.Generator) -> Tuple[int, int]:
        n_forward = int(rng.binomial(n_reads, self.strand_prob))
        return n_forward, n_reads - n_forward

    def draw(self, density: np.ndarray, n: int, rng: np.random.Generator, strand: str) -> np.ndarray:
        if n == 0:
            return np.empty(0, dtype=np.int64)
        pmf = density_to_pmf(density, strand)
        return np.sort(rng.choice(pmf.size, size=n, replace=True, p=pmf)).astype(np.int64)

    def filter_positions(
        self,
        forward: np.ndarray,
        reverse: np.ndarray,
        ref_length: int,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Keep forward p with p + read_length <= ref_length and reverse p with
        p - read_length + 1 >= 0.
        """
        forward = forward[(forward >= 0) & (forward + self.read_length <= ref_length)]
        reverse = reverse[(reverse < ref_length) & (reverse - self.read_length + 1 >= 0)]
        return forward, reverse

    def sample(
        self,
        pair: ReadDensityPair,
        n_reads: int,
        rng: np.random.Generator,
    ) -> ReadPositions:
        """
        Sample ``n_reads`` anchors in total.

        Draw order: strand split, forward positions, reverse positions.
        """
        if n_reads < 0:
            raise ParameterError("n_reads must be >= 0", stage="reads", context={"n_reads": n_reads})

        ref_length = len(pair)
        n_forward, n_reverse = self.split_reads(n_reads, rng)
        forward = self.draw(pair.forward, n_forward, rng, "forward")
        reverse = self.draw(pair.reverse, n_reverse, rng, "reverse")

        kept_forward, kept_reverse = self.filter_positions(forward, reverse, ref_length)
        n_filtered = forward.size + reverse.size - kept_forward.size - kept_reverse.size
        if n_filtered:
            logger.debug(
                f"Dropped {n_filtered} of {n_reads} reads extending past the reference "
                f"(length={ref_length}, read_length={self.read_length})"
            )

        return ReadPositions(forward=kept_forward, reverse=kept_reverse, n_filtered=int(n_filtered))
