"""
Per-reference simulation driver.

regions -> binding-site density -> strand read densities -> read positions
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

import numpy as np

from .config import SimConfig
from .density import regions_to_density
from .fragments import FragmentConvolver
from .models import ReadDensityPair, ReadPositions, Region, RegionKind
from .regions import RegionGenerator, child_seed, count_kind, generate_regions
from .sampler import ReadSampler

logger = logging.getLogger(__name__)

# Child index of each stage under a job's seed sequence
STAGE_REGIONS = 0
STAGE_FRAGMENTS = 1
STAGE_READS = 2


@dataclass
class ChromosomeSimulation:
    """Everything produced for one reference sequence."""
    chrom: str
    ref_length: int
    regions: List[Region]
    density: np.ndarray
    kernel: np.ndarray
    read_density: ReadDensityPair
    reads: ReadPositions
    attempts: int = 1

    @property
    def n_binding(self) -> int:
        return count_kind(self.regions, RegionKind.BINDING)

    def summary(self) -> dict:
        return {
            "chrom": self.chrom,
            "ref_length": self.ref_length,
            "n_regions": len(self.regions),
            "n_binding": self.n_binding,
            "attempts": self.attempts,
            "n_forward": int(self.reads.forward.size),
            "n_reverse": int(self.reads.reverse.size),
            "n_filtered": self.reads.n_filtered,
        }


def as_seed_sequence(
    seed: Union[None, int, np.random.SeedSequence],
) -> np.random.SeedSequence:
    if isinstance(seed, np.random.SeedSequence):
        return seed
    return np.random.SeedSequence(seed)


def place_regions(
    config: SimConfig,
    ref_length: int,
    seed: Union[None, int, np.random.SeedSequence] = None,
) -> Tuple[List[Region], int]:
    """Region stage of simulate_chromosome on its own, with the same seed derivation."""
    seed_seq = as_seed_sequence(config.seed if seed is None else seed)
    return generate_regions(
        RegionGenerator.from_config(config),
        ref_length,
        child_seed(seed_seq, STAGE_REGIONS),
        max_retries=config.max_retries,
    )


def simulate_chromosome(
    config: SimConfig,
    ref_length: int,
    seed: Union[None, int, np.random.SeedSequence] = None,
    chrom: str = "chr",
    n_reads: Optional[int] = None,
) -> ChromosomeSimulation:
    """
    Run the whole simulation for one reference of length ``ref_length``.

    Args:
        config: sample configuration (validated here)
        ref_length: reference length in bp
        seed: int or SeedSequence; defaults to ``config.seed``
        chrom: reference name used in logs and outputs
        n_reads: overrides ``config.reads.n_reads``

    Raises:
        ParameterError: invalid configuration for this reference
        DegenerateRealizationError: no binding region after all retries
    """
    config.check(ref_length)
    seed_seq = as_seed_sequence(config.seed if seed is None else seed)
    n_reads = config.reads.n_reads if n_reads is None else int(n_reads)

    if config.background.length > ref_length:
        logger.warning(
            f"{chrom}: background length {config.background.length} exceeds "
            f"reference length {ref_length}"
        )

    regions, attempts = place_regions(config, ref_length, seed_seq)
    density = regions_to_density(regions, ref_length, config.binding.length)

    convolver = FragmentConvolver.from_config(config)
    kernel, read_density = convolver(
        density, np.random.default_rng(child_seed(seed_seq, STAGE_FRAGMENTS))
    )

    sampler = ReadSampler.from_config(config)
    reads = sampler.sample(
        read_density, n_reads, np.random.default_rng(child_seed(seed_seq, STAGE_READS))
    )

    result = ChromosomeSimulation(
        chrom=chrom,
        ref_length=ref_length,
        regions=regions,
        density=density,
        kernel=kernel,
        read_density=read_density,
        reads=reads,
        attempts=attempts,
    )
    logger.debug(f"{chrom}: {result.summary()}")
    return result
