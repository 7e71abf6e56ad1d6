"""Utility modules for chipsimkit."""

from chipsimkit.utils.config import (
    GENOME_SIZES,
    HG38_GENOME_SIZES,
    get_genome_sizes,
)
from chipsimkit.utils.logging_utils import get_logger, setup_logger
from chipsimkit.utils.validation import (
    require_one_reference,
    validate_file_exists,
)
