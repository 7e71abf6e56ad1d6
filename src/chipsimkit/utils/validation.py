"""Input validation utilities for chipsimkit."""

import logging
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def validate_file_exists(filepath: str, description: str = "File") -> None:
    """
    Validate that a file exists.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    if not Path(filepath).exists():
        raise FileNotFoundError(f"{description} not found: {filepath}")


def require_one_reference(
    reference: Optional[str],
    assembly: Optional[str],
    length: Optional[int],
) -> str:
    """
    Check that exactly one reference source was given and return its kind.

    Raises:
        ValueError: If none or several were given
    """
    given = {
        "reference": reference is not None,
        "assembly": assembly is not None,
        "length": length is not None,
    }
    chosen = [k for k, v in given.items() if v]
    if len(chosen) != 1:
        raise ValueError(
            "Provide exactly one of a reference FASTA, an assembly name or a length "
            f"(got: {chosen or 'none'})"
        )
    if reference is not None:
        validate_file_exists(reference, "Reference")
    return chosen[0]
