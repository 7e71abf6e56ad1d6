"""
Simulate ChIP-seq read positions for whole references.

For every sample x replicate x chromosome the simulator:
1. Places binding/background regions with a two-state Markov chain
2. Builds the binding-site density
3. Convolves it with the fragment kernel into strand read densities
4. Samples read positions and drops reads running off the reference
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np
import pandas as pd
from tqdm import tqdm

from chipsimkit.simulate.chipsim.config import PRESETS, SimConfig, load_samples
from chipsimkit.simulate.chipsim.io_utils import (
    read_reference_lengths,
    reads_to_frame,
    save_densities,
    write_read_positions,
    write_regions_bed,
)
from chipsimkit.simulate.chipsim.pipeline import simulate_chromosome
from chipsimkit.utils.config import get_genome_sizes
from chipsimkit.utils.logging_utils import setup_logger
from chipsimkit.utils.validation import require_one_reference

logger = logging.getLogger(__name__)


def resolve_reference(
    reference: Optional[str] = None,
    assembly: Optional[str] = None,
    length: Optional[int] = None,
    chrom: str = "chr1",
    chromosomes: Optional[List[str]] = None,
) -> Dict[str, int]:
    """Reference name -> length from a FASTA, a built-in assembly or a single length."""
    source = require_one_reference(reference, assembly, length)
    if source == "reference":
        return read_reference_lengths(reference, chromosomes)
    if source == "assembly":
        return get_genome_sizes(assembly, chromosomes)
    return {chrom: int(length)}


def resolve_samples(
    config_file: Optional[str] = None,
    presets: Optional[List[str]] = None,
) -> List[SimConfig]:
    """Sample configs from a YAML/JSON file, or from named presets."""
    if config_file:
        if Path(config_file).suffix == ".json":
            return [SimConfig.from_json(config_file)]
        return load_samples(config_file)

    presets = presets or ["chip"]
    unknown = [p for p in presets if p not in PRESETS]
    if unknown:
        raise ValueError(f"Unknown presets: {unknown}. Available: {list(PRESETS)}")
    return [PRESETS[p]() for p in presets]


def sample_seed(config: SimConfig, index: int, run_seed: Optional[int] = None) -> int:
    """
    Effective seed of one sample.

    A run seed is split into one seed per sample position; otherwise the
    sample keeps its own seed, or gets fresh entropy when it has none. The
    result is written to config_used.yaml so each sample can be rerun alone.
    """
    if run_seed is not None:
        seq = np.random.SeedSequence(run_seed, spawn_key=(index,))
        return int(seq.generate_state(1, np.uint64)[0])
    if config.seed is not None:
        return int(config.seed)
    return int(np.random.SeedSequence().entropy)


def run_chip_simulation(
    output_dir: str,
    reference: Optional[str] = None,
    assembly: Optional[str] = None,
    length: Optional[int] = None,
    chrom: str = "chr1",
    chromosomes: Optional[List[str]] = None,
    config_file: Optional[str] = None,
    presets: Optional[List[str]] = None,
    n_reads: Optional[int] = None,
    replicates: Optional[int] = None,
    seed: Optional[int] = None,
    max_retries: Optional[int] = None,
    save_density: bool = False,
    plot: bool = False,
    compress: bool = False,
    verbose: bool = False,
) -> pd.DataFrame:
    """
    Simulate read positions for every sample, replicate and chromosome.

    Args:
        output_dir: Output directory
        reference: Reference FASTA (.fa/.fasta, optionally .gz) or .fai index
        assembly: Built-in assembly name instead of a FASTA (hg38, GRCh38)
        length: Single synthetic reference length instead of a FASTA
        chrom: Name of the synthetic reference (with ``length``)
        chromosomes: Subset of reference sequences to simulate
        config_file: Sample sheet (YAML) or single config (YAML/JSON)
        presets: Preset names used when no config file is given
        n_reads: Reads per chromosome run (overrides the config)
        replicates: Replicates per sample (overrides the config)
        seed: Run seed; replaces every sample seed with one derived from it
        max_retries: Region realizations tried before giving up
        save_density: Write densities and kernel as .npz
        plot: Write diagnostic PNG figures
        compress: gzip the read position tables
        verbose: Enable debug logging

    Outputs:
        - <sample>/rep<k>/<chrom>.reads.tsv[.gz]: 0-based read anchors with strand
        - <sample>/rep<k>/<chrom>.regions.bed: simulated regions with weights
        - <sample>/rep<k>/<chrom>.density.npz: densities (with save_density)
        - <sample>/rep<k>/<chrom>.*.png: figures (with plot)
        - <sample>/config_used.yaml: configuration of each sample, with its effective seed
        - simulation_summary.tsv: one row per chromosome run

    Returns:
        The summary table.
    """
    setup_logger("chipsimkit", level=logging.DEBUG if verbose else logging.INFO)

    logger.info("ChIP-seq read simulation")
    logger.info(f"Output: {output_dir}")

    lengths = resolve_reference(reference, assembly, length, chrom, chromosomes)
    samples = resolve_samples(config_file, presets)

    for config in samples:
        if n_reads is not None:
            config.reads.n_reads = int(n_reads)
        if replicates is not None:
            config.replicates = int(replicates)
        if max_retries is not None:
            config.max_retries = int(max_retries)
        config.check()

    names = [c.name for c in samples]
    if len(set(names)) != len(names):
        raise ValueError(f"Sample names must be unique: {names}")

    for si, config in enumerate(samples):
        config.seed = sample_seed(config, si, seed)
        logger.info(f"Seed of {config.name}: {config.seed}")
    logger.info(f"References: {len(lengths)}, Samples: {[c.name for c in samples]}")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    jobs = [
        (config, rep, ci, name, ref_len)
        for config in samples
        for rep in range(1, config.replicates + 1)
        for ci, (name, ref_len) in enumerate(lengths.items())
    ]

    for config in samples:
        sample_dir = output_path / config.name
        sample_dir.mkdir(parents=True, exist_ok=True)
        config.to_yaml(sample_dir / "config_used.yaml")

    rows = []
    for config, rep, ci, name, ref_len in tqdm(jobs, desc="Simulating", disable=len(jobs) < 2):
        job_seed = np.random.SeedSequence(config.seed, spawn_key=(rep, ci))
        sim = simulate_chromosome(config, ref_len, seed=job_seed, chrom=name)

        rep_dir = output_path / config.name / f"rep{rep}"
        reads_path = write_read_positions(
            sim.reads, rep_dir / f"{name}.reads.tsv", name, compress=compress
        )
        write_regions_bed(sim.regions, rep_dir / f"{name}.regions.bed", name, ref_len)
        if save_density:
            save_densities(sim, rep_dir / f"{name}.density.npz")
        if plot:
            _write_plots(sim, rep_dir, config)

        row = {"sample": config.name, "replicate": rep}
        row.update(sim.summary())
        row["reads_file"] = str(reads_path)
        rows.append(row)

        logger.info(
            f"{config.name} rep{rep} {name}: {row['n_binding']} binding sites, "
            f"{row['n_forward']}+{row['n_reverse']} reads "
            f"({row['n_filtered']} dropped at reference ends)"
        )

    summary = pd.DataFrame(rows)
    summary_path = output_path / "simulation_summary.tsv"
    summary.to_csv(summary_path, sep="\t", index=False)
    logger.info(f"Summary: {summary_path}")
    return summary


def _write_plots(sim, rep_dir: Path, config: SimConfig) -> None:
    from chipsimkit.simulate.chipsim.plotting import (
        plot_density_profile,
        plot_fragment_kernel,
        plot_read_histogram,
    )

    plot_density_profile(sim, rep_dir / f"{sim.chrom}.profile.png")
    plot_fragment_kernel(sim.kernel, rep_dir / f"{sim.chrom}.kernel.png", config.binding.length)
    plot_read_histogram(
        reads_to_frame(sim.reads, sim.chrom), sim.ref_length, rep_dir / f"{sim.chrom}.reads.png"
    )
