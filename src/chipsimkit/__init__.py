"""
chipsimkit: ChIP-seq read simulation.

This package provides tools for:
- Markov-chain placement of transcription-factor binding sites
- Binding-site and strand read densities via a fragment kernel
- Sampling read positions for ChIP and input samples
- Diagnostic plots of the simulated densities
"""

__version__ = "0.3.0"
__author__ = "chipsimkit Team"
