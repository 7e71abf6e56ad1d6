"""
Region generation.

A two-state Markov chain (Binding, Background) walks along the reference and
emits contiguous regions. Each state has a parameter generator that returns
(length, weight) for a region starting at a given position.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np

from .config import SimConfig
from .errors import DegenerateRealizationError, ParameterError
from .models import Region, RegionKind

logger = logging.getLogger(__name__)

# (start, rng) -> (length, weight)
ParamGenerator = Callable[[int, np.random.Generator], Tuple[int, float]]

# Fixed state order used for every categorical draw
STATES = (RegionKind.BINDING, RegionKind.BACKGROUND)


# =============================================================================
# Weight distributions
# =============================================================================

def pareto_lower_bound(shape: float, mean: float) -> float:
    """
    Pareto I scale x_m giving the requested mean.

    Uses the standard relation mean = shape * x_m / (shape - 1), i.e.
    x_m = (shape - 1) / shape * mean.
    """
    if shape <= 1:
        raise ParameterError(
            "Pareto shape must be > 1 for a finite mean",
            stage="regions",
            context={"shape": shape},
        )
    return (shape - 1.0) / shape * mean


def sample_pareto(rng: np.random.Generator, shape: float, lower_bound: float) -> float:
    # numpy draws Lomax (Pareto II); shift to Pareto I
    return float(lower_bound * (1.0 + rng.pareto(shape)))


def make_background_generator(length: int, shape: float, scale: float) -> ParamGenerator:
    """Fixed-length regions with Gamma(shape, scale) weight."""
    def generate(start: int, rng: np.random.Generator) -> Tuple[int, float]:
        return length, float(rng.gamma(shape, scale))
    return generate


def make_binding_generator(length: int, shape: float, mean_weight: float) -> ParamGenerator:
    """Fixed-length regions with Pareto I weight of the given mean."""
    lower_bound = pareto_lower_bound(shape, mean_weight)

    def generate(start: int, rng: np.random.Generator) -> Tuple[int, float]:
        return length, sample_pareto(rng, shape, lower_bound)
    return generate


def generators_from_config(config: SimConfig) -> Dict[RegionKind, ParamGenerator]:
    return {
        RegionKind.BACKGROUND: make_background_generator(
            config.background.length,
            config.background.shape,
            config.background.scale,
        ),
        RegionKind.BINDING: make_binding_generator(
            config.binding.length,
            config.binding.shape,
            config.mean_binding_weight,
        ),
    }


# =============================================================================
# Markov chain
# =============================================================================

class RegionGenerator:
    """
    Markov-chain region placement.

    The transition row of Binding is fixed to Background; only the
    Background row is configurable.
    """

    def __init__(
        self,
        p_bind_given_back: float,
        generators: Dict[RegionKind, ParamGenerator],
        init_binding: float = 0.0,
    ):
        missing = set(RegionKind) - set(generators)
        if missing:
            raise ParameterError(
                "Missing parameter generator for region kinds",
                stage="regions",
                context={"missing": sorted(k.value for k in missing)},
            )
        for label, p in [("p_bind_given_back", p_bind_given_back), ("init_binding", init_binding)]:
            if not 0 <= p <= 1:
                raise ParameterError(
                    f"{label} must be in [0, 1]", stage="regions", context={label: p}
                )

        self.generators = generators
        self.init = np.array([init_binding, 1.0 - init_binding])
        self.transition = {
            RegionKind.BINDING: np.array([0.0, 1.0]),
            RegionKind.BACKGROUND: np.array([p_bind_given_back, 1.0 - p_bind_given_back]),
        }

    @classmethod
    def from_config(cls, config: SimConfig) -> "RegionGenerator":
        return cls(
            p_bind_given_back=config.markov.p_bind_given_back,
            generators=generators_from_config(config),
            init_binding=config.markov.init_binding,
        )

    @property
    def can_bind(self) -> bool:
        return self.init[0] > 0 or self.transition[RegionKind.BACKGROUND][0] > 0

    @staticmethod
    def _draw_state(rng: np.random.Generator, probs: np.ndarray) -> RegionKind:
        return STATES[int(rng.choice(len(STATES), p=probs))]

    def generate(
        self,
        rng: np.random.Generator,
        length: int,
        start: int = 0,
    ) -> List[Region]:
        """
        Place regions over [start, start + length).

        Per region the draw order is: state, then region parameters. A Binding
        region is only kept when it ends before the target end. A Binding draw
        that would reach the end is discarded, not appended, and a Background
        region is drawn from the same start instead, so the last region is
        always Background.
        """
        if length <= 0:
            raise ParameterError(
                "Target length must be > 0", stage="regions", context={"length": length}
            )

        end = start + length
        regions: List[Region] = []
        pos = start
        state = self._draw_state(rng, self.init)

        while pos < end:
            region_len, weight = self.generators[state](pos, rng)
            if state is RegionKind.BINDING and pos + region_len >= end:
                state = RegionKind.BACKGROUND
                region_len, weight = self.generators[state](pos, rng)
            if region_len <= 0:
                raise ParameterError(
                    "Region generator returned a non-positive length",
                    stage="regions",
                    context={"kind": state.value, "start": pos, "length": region_len},
                )
            regions.append(Region(state, pos, int(region_len), float(weight)))
            pos += region_len
            state = self._draw_state(rng, self.transition[state])

        return regions


def child_seed(seed_seq: np.random.SeedSequence, index: int) -> np.random.SeedSequence:
    """i-th child of a seed sequence, independent of earlier spawn() calls."""
    return np.random.SeedSequence(
        seed_seq.entropy,
        spawn_key=tuple(seed_seq.spawn_key) + (index,),
        pool_size=seed_seq.pool_size,
    )


def count_kind(regions: List[Region], kind: RegionKind) -> int:
    return sum(1 for r in regions if r.kind is kind)


def generate_regions(
    generator: RegionGenerator,
    length: int,
    seed_seq: np.random.SeedSequence,
    max_retries: int = 10,
    require_binding: Optional[bool] = None,
    start: int = 0,
) -> Tuple[List[Region], int]:
    """
    Generate regions, retrying realizations without any Binding region.

    Attempt i draws from the i-th child of ``seed_seq``. Returns the regions
    and the number of attempts used.
    """
    if require_binding is None:
        require_binding = generator.can_bind
    if max_retries < 1:
        raise ParameterError(
            "max_retries must be >= 1", stage="regions", context={"max_retries": max_retries}
        )

    for attempt in range(1, max_retries + 1):
        rng = np.random.default_rng(child_seed(seed_seq, attempt - 1))
        regions = generator.generate(rng, length, start=start)
        if not require_binding or count_kind(regions, RegionKind.BINDING) > 0:
            return regions, attempt
        logger.warning(
            f"No binding region in realization {attempt}/{max_retries} "
            f"(length={length}, regions={len(regions)}); reseeding"
        )

    raise DegenerateRealizationError(
        f"No binding region produced in {max_retries} attempts",
        stage="regions",
        context={
            "length": length,
            "p_bind_given_back": float(generator.transition[RegionKind.BACKGROUND][0]),
            "max_retries": max_retries,
        },
    )
