"""
Fragment kernel and strand read densities.

The kernel is the distribution of the distance between a binding site and
the read start, built from sampled fragment lengths and a Beta(2, 2) position
of the binding site inside the fragment. Forward reads start upstream of the
site, reverse reads end downstream of it.
"""

import logging
from typing import Callable, Optional, Tuple

import numpy as np
from scipy import fft, stats

from .errors import ParameterError
from .models import ReadDensityPair

logger = logging.getLogger(__name__)

# (lengths, min_length, max_length, mean_length) -> relative probabilities
FragmentDensity = Callable[[np.ndarray, int, int, float], np.ndarray]

OFFSET_ALPHA = 2.0
OFFSET_BETA = 2.0

# Relative size of a negative artifact that is worth a warning
CLAMP_TOLERANCE = 1e-8


def fragment_length_density(
    lengths: np.ndarray,
    min_length: int,
    max_length: int,
    mean_length: float,
) -> np.ndarray:
    """Normal density centred on mean_length with sd = (max - min) / 4."""
    sd = max((max_length - min_length) / 4.0, 1.0)
    probs = stats.norm.pdf(lengths, loc=mean_length, scale=sd)
    probs[(lengths < min_length) | (lengths > max_length)] = 0.0
    return probs


def clamp_density(values: np.ndarray, label: str = "density") -> np.ndarray:
    """Replace NaN and negative values by zero, warning about large artifacts."""
    values = np.nan_to_num(values, nan=0.0, posinf=0.0, neginf=0.0)
    peak = float(values.max()) if values.size else 0.0
    lowest = float(values.min()) if values.size else 0.0
    if lowest < -CLAMP_TOLERANCE * max(peak, 1.0):
        logger.warning(f"Clamping negative {label} values (min {lowest:.3g}, max {peak:.3g})")
    return np.clip(values, 0.0, None)


def pad_kernel(kernel: np.ndarray, binding_length: int) -> np.ndarray:
    """Shift the kernel by half the binding length."""
    return np.concatenate([np.zeros(binding_length // 2), kernel])


class FragmentConvolver:
    """
    Convert a binding-site density into forward and reverse read densities.

    Args:
        min_length, mean_length, max_length: fragment length distribution
        binding_length: binding region length, subtracted from fragment sizes
        n_samples: number of fragments drawn to build the kernel
        fragment_density: relative probability of each fragment length
    """

    def __init__(
        self,
        min_length: int = 150,
        mean_length: float = 200,
        max_length: int = 250,
        binding_length: int = 50,
        n_samples: int = 100_000,
        fragment_density: Optional[FragmentDensity] = None,
    ):
        if not 0 < min_length <= mean_length <= max_length:
            raise ParameterError(
                "Fragment lengths must satisfy 0 < min <= mean <= max",
                stage="fragments",
                context={"min": min_length, "mean": mean_length, "max": max_length},
            )
        if binding_length > min_length:
            raise ParameterError(
                "Binding length must not exceed the minimum fragment length",
                stage="fragments",
                context={"binding_length": binding_length, "min": min_length},
            )
        if n_samples <= 0:
            raise ParameterError(
                "n_samples must be > 0", stage="fragments", context={"n_samples": n_samples}
            )

        self.min_length = int(min_length)
        self.mean_length = mean_length
        self.max_length = int(max_length)
        self.binding_length = int(binding_length)
        self.n_samples = int(n_samples)
        self.fragment_density = fragment_density or fragment_length_density

    @classmethod
    def from_config(cls, config) -> "FragmentConvolver":
        fr = config.fragments
        return cls(
            min_length=fr.min_length,
            mean_length=fr.mean_length,
            max_length=fr.max_length,
            binding_length=config.binding.length,
            n_samples=fr.n_samples,
        )

    def fragment_probabilities(self) -> Tuple[np.ndarray, np.ndarray]:
        lengths = np.arange(self.min_length, self.max_length + 1)
        probs = np.asarray(
            self.fragment_density(lengths, self.min_length, self.max_length, self.mean_length),
            dtype=float,
        )
        total = probs.sum()
        if not np.isfinite(total) or total <= 0 or (probs < 0).any():
            raise ParameterError(
                "Fragment length density must be non-negative with positive mass",
                stage="fragments",
                context={"min": self.min_length, "max": self.max_length},
            )
        return lengths, probs / total

    def build_kernel(self, rng: np.random.Generator) -> np.ndarray:
        """
        Normalized histogram of read offsets, before padding.

        Draw order: fragment sizes, then offsets.
        """
        lengths, probs = self.fragment_probabilities()
        sizes = rng.choice(lengths - self.binding_length, size=self.n_samples, p=probs)
        offsets = rng.beta(OFFSET_ALPHA, OFFSET_BETA, size=self.n_samples)
        shifts = np.rint(sizes * offsets).astype(np.int64)

        counts = np.bincount(shifts, minlength=self.max_length - self.binding_length + 1)
        return counts / counts.sum()

    def convolve(self, density: np.ndarray, kernel: np.ndarray) -> ReadDensityPair:
        """
        Linear convolution of the density with the padded kernel.

        forward[i] = sum_j density[i + j] * k[j]
        reverse[i] = sum_j density[i - j] * k[j]
        """
        density = np.asarray(density, dtype=float)
        k = pad_kernel(np.asarray(kernel, dtype=float), self.binding_length)
        n, m = density.size, k.size
        size = fft.next_fast_len(n + m - 1, real=True)

        density_hat = fft.rfft(density, size)
        reverse_full = fft.irfft(density_hat * fft.rfft(k, size), size)
        forward_full = fft.irfft(density_hat * fft.rfft(k[::-1], size), size)

        forward = forward_full[m - 1:m - 1 + n]
        reverse = reverse_full[:n]

        return ReadDensityPair(
            forward=clamp_density(forward, "forward read density"),
            reverse=clamp_density(reverse, "reverse read density"),
        )

    def __call__(
        self,
        density: np.ndarray,
        rng: np.random.Generator,
    ) -> Tuple[np.ndarray, ReadDensityPair]:
        kernel = self.build_kernel(rng)
        return kernel, self.convolve(density, kernel)
