"""
Binding-site density.

Turns a region sequence into one weight per reference position. Each region
kind has its own density function; the mapping below is exhaustive over
RegionKind.
"""

from typing import Callable, Dict, List

import numpy as np

from .errors import ParameterError
from .models import Region, RegionKind

# (region, binding_length) -> per-position values for the region
DensityFunction = Callable[[Region, int], np.ndarray]


def background_density(region: Region, binding_length: int) -> np.ndarray:
    """Uniform weight / binding_length over the whole region."""
    return np.full(region.length, region.weight / binding_length, dtype=float)


def binding_density(region: Region, binding_length: int) -> np.ndarray:
    """All weight as a single spike at the floor of the midpoint offset."""
    values = np.zeros(region.length, dtype=float)
    values[region.length // 2] = region.weight
    return values


DENSITY_FUNCTIONS: Dict[RegionKind, DensityFunction] = {
    RegionKind.BINDING: binding_density,
    RegionKind.BACKGROUND: background_density,
}


def density_function(kind: RegionKind) -> DensityFunction:
    try:
        return DENSITY_FUNCTIONS[kind]
    except KeyError:
        raise ParameterError(
            f"No density function for region kind {kind!r}",
            stage="density",
            context={"known": sorted(k.value for k in DENSITY_FUNCTIONS)},
        ) from None


def regions_to_density(
    regions: List[Region],
    ref_length: int,
    binding_length: int,
) -> np.ndarray:
    """
    Binding-site density of length ``ref_length``.

    Regions reaching past the reference end are truncated; positions not
    covered by any region stay zero.
    """
    if ref_length <= 0:
        raise ParameterError(
            "Reference length must be > 0", stage="density", context={"ref_length": ref_length}
        )
    if binding_length <= 0:
        raise ParameterError(
            "Binding length must be > 0",
            stage="density",
            context={"binding_length": binding_length},
        )

    density = np.zeros(ref_length, dtype=float)
    for region in regions:
        if region.start >= ref_length:
            break
        values = density_function(region.kind)(region, binding_length)
        stop = min(region.end, ref_length)
        density[region.start:stop] = values[:stop - region.start]

    return density


def expected_mass(regions: List[Region], ref_length: int, binding_length: int) -> float:
    """Total density mass the regions should contribute inside the reference."""
    total = 0.0
    for region in regions:
        if region.start >= ref_length:
            continue
        covered = min(region.end, ref_length) - region.start
        if region.kind is RegionKind.BACKGROUND:
            total += region.weight * covered / binding_length
        elif region.midpoint < ref_length:
            total += region.weight
    return total
