"""Reference genome constants for chipsimkit."""

from typing import Dict, List, Optional

# Human genome sizes (hg38/GRCh38), UCSC naming
HG38_GENOME_SIZES = {
    "chr1": 248956422,
    "chr2": 242193529,
    "chr3": 198295559,
    "chr4": 190214555,
    "chr5": 181538259,
    "chr6": 170805979,
    "chr7": 159345973,
    "chr8": 145138636,
    "chr9": 138394717,
    "chr10": 133797422,
    "chr11": 135086622,
    "chr12": 133275309,
    "chr13": 114364328,
    "chr14": 107043718,
    "chr15": 101991189,
    "chr16": 90338345,
    "chr17": 83257441,
    "chr18": 80373285,
    "chr19": 58617616,
    "chr20": 64444167,
    "chr21": 46709983,
    "chr22": 50818468,
    "chrX": 156040895,
    "chrY": 57227415,
    "chrM": 16569,
}

# Same assembly, Ensembl naming (as in the Ensembl release FASTA files)
GRCH38_ENSEMBL_SIZES = {
    ("MT" if name == "chrM" else name[3:]): size
    for name, size in HG38_GENOME_SIZES.items()
}

GENOME_SIZES = {
    "hg38": HG38_GENOME_SIZES,
    "GRCh38": GRCH38_ENSEMBL_SIZES,
}


def get_genome_sizes(
    assembly: str = "hg38",
    chromosomes: Optional[List[str]] = None,
) -> Dict[str, int]:
    """
    Get chromosome sizes for a given assembly.

    Args:
        assembly: Genome assembly name (hg38 or GRCh38)
        chromosomes: Optional subset, kept in the given order

    Returns:
        Dictionary mapping chromosome names to sizes

    Raises:
        ValueError: If the assembly or a chromosome is not known
    """
    if assembly not in GENOME_SIZES:
        raise ValueError(
            f"Unsupported assembly: {assembly}. "
            f"Supported assemblies: {list(GENOME_SIZES.keys())}"
        )
    sizes = GENOME_SIZES[assembly]
    if not chromosomes:
        return sizes.copy()

    missing = [c for c in chromosomes if c not in sizes]
    if missing:
        raise ValueError(f"Chromosomes not in {assembly}: {missing}")
    return {c: sizes[c] for c in chromosomes}
