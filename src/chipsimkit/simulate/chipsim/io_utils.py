"""
Input/output helpers

- reference lengths from FASTA / FASTA index
- read positions, regions and densities to disk
"""

import gzip
import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from .models import ReadPositions, Region

logger = logging.getLogger(__name__)

READ_COLUMNS = ["chrom", "position", "strand"]


def _open_text(path: Path):
    if path.suffix == ".gz":
        return gzip.open(path, "rt")
    return open(path, "r")


def read_fai_lengths(path: Union[str, Path]) -> Dict[str, int]:
    """Sequence lengths from a samtools .fai index."""
    lengths = {}
    with open(path, "r") as f:
        for line in f:
            parts = line.rstrip("\n").split("\t")
            if len(parts) < 2 or not parts[0]:
                continue
            lengths[parts[0]] = int(parts[1])
    return lengths


def read_fasta_lengths(path: Union[str, Path]) -> Dict[str, int]:
    """
    Sequence lengths from a FASTA file (.fa, .fasta, optionally .gz).

    Only the lengths are kept; sequences are never held in memory.
    """
    path = Path(path)
    lengths: Dict[str, int] = {}
    current_id = None
    current_len = 0

    with _open_text(path) as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            if line.startswith(">"):
                if current_id is not None:
                    lengths[current_id] = current_len
                current_id = line[1:].split()[0]
                current_len = 0
            else:
                current_len += len(line)

    if current_id is not None:
        lengths[current_id] = current_len

    empty = [name for name, length in lengths.items() if length == 0]
    for name in empty:
        logger.warning(f"Skipping empty sequence: {name}")
        del lengths[name]

    if not lengths:
        raise ValueError(f"No sequences found in {path}")
    return lengths


def read_reference_lengths(
    path: Union[str, Path],
    chromosomes: Optional[Iterable[str]] = None,
) -> Dict[str, int]:
    """
    Reference lengths from a FASTA or its .fai index.

    A sibling ``<fasta>.fai`` is used when present.

    Args:
        path: FASTA (.fa/.fasta, optionally .gz) or .fai file
        chromosomes: optional subset, kept in the given order
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Reference not found: {path}")

    fai = path if path.suffix == ".fai" else Path(str(path) + ".fai")
    if fai.exists():
        lengths = read_fai_lengths(fai)
    else:
        lengths = read_fasta_lengths(path)

    if chromosomes:
        chromosomes = list(chromosomes)
        missing = [c for c in chromosomes if c not in lengths]
        if missing:
            raise ValueError(f"Chromosomes not found in {path.name}: {missing}")
        lengths = {c: lengths[c] for c in chromosomes}

    logger.info(
        f"Loaded {len(lengths)} reference sequences from {path.name} "
        f"({sum(lengths.values())} bp)"
    )
    return lengths


# =============================================================================
# Outputs
# =============================================================================

def reads_to_frame(reads: ReadPositions, chrom: str) -> pd.DataFrame:
    forward = pd.DataFrame({"chrom": chrom, "position": reads.forward, "strand": "+"})
    reverse = pd.DataFrame({"chrom": chrom, "position": reads.reverse, "strand": "-"})
    df = pd.concat([forward, reverse], ignore_index=True)
    return df[READ_COLUMNS]


def write_read_positions(
    reads: ReadPositions,
    path: Union[str, Path],
    chrom: str,
    compress: bool = False,
) -> Path:
    """Write 0-based read anchors as TSV (chrom, position, strand)."""
    path = Path(path)
    if compress and path.suffix != ".gz":
        path = Path(str(path) + ".gz")
    path.parent.mkdir(parents=True, exist_ok=True)

    reads_to_frame(reads, chrom).to_csv(
        path, sep="\t", index=False, compression="gzip" if compress else None
    )
    return path


def load_read_positions(path: Union[str, Path]) -> pd.DataFrame:
    return pd.read_csv(path, sep="\t", dtype={"chrom": str, "position": np.int64, "strand": str})


def regions_to_frame(regions: List[Region], chrom: str, ref_length: Optional[int] = None) -> pd.DataFrame:
    rows = []
    for i, region in enumerate(regions, start=1):
        end = region.end if ref_length is None else min(region.end, ref_length)
        rows.append({
            "chrom": chrom,
            "start": region.start,
            "end": end,
            "name": f"{region.kind.value}_{i}",
            "score": round(region.weight, 4),
            "kind": region.kind.value,
        })
    return pd.DataFrame(rows, columns=["chrom", "start", "end", "name", "score", "kind"])


def write_regions_bed(
    regions: List[Region],
    path: Union[str, Path],
    chrom: str,
    ref_length: Optional[int] = None,
) -> Path:
    """BED6-like table: chrom, start, end, name, weight, kind (clipped to the reference)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    regions_to_frame(regions, chrom, ref_length).to_csv(path, sep="\t", index=False, header=False)
    return path


def save_densities(sim, path: Union[str, Path]) -> Path:
    """Binding-site density, strand densities and kernel of a ChromosomeSimulation."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        path,
        binding=sim.density,
        forward=sim.read_density.forward,
        reverse=sim.read_density.reverse,
        kernel=sim.kernel,
    )
    return path
