"""Simulation module for ChIP-seq read positions."""

from chipsimkit.simulate.chip import run_chip_simulation

__all__ = [
    "run_chip_simulation",
]
