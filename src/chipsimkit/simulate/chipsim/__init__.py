"""
ChIP-seq read simulator.

Binding sites are placed by a two-state Markov chain, smeared into strand
read densities by a fragment kernel and sampled into read positions.
"""

from .config import SimConfig, get_chip_config, get_default_config, get_input_config, load_samples
from .errors import DegenerateRealizationError, NumericError, ParameterError, SimulationError
from .models import ReadDensityPair, ReadPositions, Region, RegionKind
from .pipeline import ChromosomeSimulation, simulate_chromosome

__version__ = "0.3.0"
__all__ = [
    'SimConfig',
    'get_default_config',
    'get_chip_config',
    'get_input_config',
    'load_samples',
    'SimulationError',
    'ParameterError',
    'DegenerateRealizationError',
    'NumericError',
    'Region',
    'RegionKind',
    'ReadDensityPair',
    'ReadPositions',
    'ChromosomeSimulation',
    'simulate_chromosome',
]
