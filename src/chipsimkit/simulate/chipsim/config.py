"""
Simulation configuration.

Parameter groups:
A. Region Markov chain (3): p_bind_given_back, p_back_given_back, init_binding
B. Background regions (3): shape, scale, length
C. Binding regions (3): length, shape, enrichment
D. Fragments (4): min_length, mean_length, max_length, n_samples
E. Reads (3): n_reads, read_length, strand_prob
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import ParameterError

PROB_TOLERANCE = 1e-9


@dataclass
class MarkovParams:
    """A. Region Markov chain. Binding always moves on to Background."""
    p_bind_given_back: float = 0.05
    p_back_given_back: float = 0.95
    init_binding: float = 0.0     # probability that the first region is Binding


@dataclass
class BackgroundParams:
    """B. Background regions: weight ~ Gamma(shape, scale)."""
    shape: float = 1.0
    scale: float = 20.0
    length: int = 500


@dataclass
class BindingParams:
    """
    C. Binding regions: weight ~ Pareto I(shape, x_m).

    x_m is chosen so the Pareto mean equals the mean background weight
    times ``enrichment``.
    """
    length: int = 50
    shape: float = 1.5
    enrichment: float = 5.0


@dataclass
class FragmentParams:
    """D. Fragment length distribution and kernel sample size."""
    min_length: int = 150
    mean_length: int = 200
    max_length: int = 250
    n_samples: int = 100_000


@dataclass
class ReadParams:
    """E. Read sampling."""
    n_reads: int = 100_000
    read_length: int = 36
    strand_prob: float = 0.5      # probability that a read is on the forward strand


# =============================================================================
# Complete configuration
# =============================================================================

@dataclass
class SimConfig:
    """Complete configuration for one simulated sample."""

    markov: MarkovParams = field(default_factory=MarkovParams)
    background: BackgroundParams = field(default_factory=BackgroundParams)
    binding: BindingParams = field(default_factory=BindingParams)
    fragments: FragmentParams = field(default_factory=FragmentParams)
    reads: ReadParams = field(default_factory=ReadParams)

    name: str = "TFChip"
    replicates: int = 1
    seed: Optional[int] = None
    max_retries: int = 10

    @property
    def mean_background_weight(self) -> float:
        return self.background.shape * self.background.scale

    @property
    def mean_binding_weight(self) -> float:
        return self.mean_background_weight * self.binding.enrichment

    @property
    def can_bind(self) -> bool:
        """True when the chain is able to emit Binding regions at all."""
        return self.markov.p_bind_given_back > 0 or self.markov.init_binding > 0

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "replicates": self.replicates,
            "seed": self.seed,
            "max_retries": self.max_retries,
            "markov": asdict(self.markov),
            "background": asdict(self.background),
            "binding": asdict(self.binding),
            "fragments": asdict(self.fragments),
            "reads": asdict(self.reads),
        }

    @classmethod
    def from_dict(cls, d: dict, base: Optional["SimConfig"] = None) -> "SimConfig":
        """Build a config from a (possibly partial) dict layered over ``base``."""
        config = cls.from_dict(base.to_dict()) if base is not None else cls()

        groups = {
            "markov": MarkovParams,
            "background": BackgroundParams,
            "binding": BindingParams,
            "fragments": FragmentParams,
            "reads": ReadParams,
        }
        scalars = {"name", "replicates", "seed", "max_retries"}

        unknown = set(d) - set(groups) - scalars
        if unknown:
            raise ParameterError(
                f"Unknown configuration keys: {sorted(unknown)}",
                context={"allowed": sorted(set(groups) | scalars)},
            )

        for key, group_cls in groups.items():
            if key not in d or d[key] is None:
                continue
            allowed = {f.name for f in fields(group_cls)}
            bad = set(d[key]) - allowed
            if bad:
                raise ParameterError(
                    f"Unknown keys in '{key}': {sorted(bad)}",
                    context={"allowed": sorted(allowed)},
                )
            merged = asdict(getattr(config, key))
            merged.update(d[key])
            setattr(config, key, group_cls(**merged))

        for key in scalars & set(d):
            setattr(config, key, d[key])

        return config

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SimConfig":
        with open(path, "r") as f:
            d = yaml.safe_load(f) or {}
        return cls.from_dict(d)

    def to_yaml(self, path: Union[str, Path]):
        with open(path, "w") as f:
            yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "SimConfig":
        with open(path, "r") as f:
            d = json.load(f)
        return cls.from_dict(d)

    def to_json(self, path: Union[str, Path]):
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    # =========================================================================
    # Validation
    # =========================================================================

    def validate(self, ref_length: Optional[int] = None) -> List[str]:
        """Return a list of problems; empty when the config is usable."""
        problems = []
        m, bg, bd, fr, rd = self.markov, self.background, self.binding, self.fragments, self.reads

        for label, p in [
            ("markov.p_bind_given_back", m.p_bind_given_back),
            ("markov.p_back_given_back", m.p_back_given_back),
            ("markov.init_binding", m.init_binding),
            ("reads.strand_prob", rd.strand_prob),
        ]:
            if not 0 <= p <= 1:
                problems.append(f"{label} must be in [0, 1], got {p}")
        if abs(m.p_bind_given_back + m.p_back_given_back - 1) > PROB_TOLERANCE:
            problems.append(
                "markov.p_bind_given_back + markov.p_back_given_back must equal 1"
            )

        if bg.shape <= 0 or bg.scale <= 0:
            problems.append("background.shape and background.scale must be > 0")
        if bg.length <= 0:
            problems.append("background.length must be > 0")

        if bd.length <= 0:
            problems.append("binding.length must be > 0")
        if bd.shape <= 1:
            problems.append(f"binding.shape must be > 1 for a finite Pareto mean, got {bd.shape}")
        if bd.enrichment <= 0:
            problems.append("binding.enrichment must be > 0")

        if not 0 < fr.min_length <= fr.mean_length <= fr.max_length:
            problems.append("fragments must satisfy 0 < min_length <= mean_length <= max_length")
        if bd.length > fr.min_length:
            problems.append(
                f"binding.length ({bd.length}) must not exceed fragments.min_length ({fr.min_length})"
            )
        if fr.n_samples <= 0:
            problems.append("fragments.n_samples must be > 0")

        if rd.n_reads < 0:
            problems.append("reads.n_reads must be >= 0")
        if rd.read_length <= 0:
            problems.append("reads.read_length must be > 0")

        if self.replicates < 1:
            problems.append("replicates must be >= 1")
        if self.max_retries < 1:
            problems.append("max_retries must be >= 1")

        if ref_length is not None:
            if ref_length <= 0:
                problems.append(f"reference length must be > 0, got {ref_length}")
            if bd.length >= ref_length:
                problems.append(
                    f"binding.length ({bd.length}) must be shorter than the reference ({ref_length})"
                )
            if rd.read_length > ref_length:
                problems.append(
                    f"reads.read_length ({rd.read_length}) exceeds the reference ({ref_length})"
                )

        return problems

    def check(self, ref_length: Optional[int] = None) -> "SimConfig":
        """Raise ParameterError listing every problem found by validate()."""
        problems = self.validate(ref_length)
        if problems:
            raise ParameterError(
                "; ".join(problems),
                context={"sample": self.name, "ref_length": ref_length},
            )
        return self


# =============================================================================
# Presets
# =============================================================================

def get_default_config() -> SimConfig:
    return SimConfig()


def get_chip_config() -> SimConfig:
    """Transcription-factor ChIP sample."""
    config = SimConfig(name="TFChip", replicates=3)
    config.markov = MarkovParams(p_bind_given_back=0.05, p_back_given_back=0.95)
    config.binding.enrichment = 5.0
    config.reads.n_reads = 10_000_000
    return config


def get_input_config() -> SimConfig:
    """Input control: background regions only."""
    config = SimConfig(name="input", replicates=3)
    config.markov = MarkovParams(p_bind_given_back=0.0, p_back_given_back=1.0)
    config.binding.enrichment = 5.0
    config.reads.n_reads = 10_000_000
    return config


PRESETS = {
    "default": get_default_config,
    "chip": get_chip_config,
    "input": get_input_config,
}


# =============================================================================
# Sample sheets
# =============================================================================

# Keys of the per-sample blocks in the pipeline config file
PIPELINE_KEYS = {
    "Pbind_given_back": ("markov", "p_bind_given_back", float),
    "Pback_given_back": ("markov", "p_back_given_back", float),
    "EF": ("binding", "enrichment", float),
    "nReads": ("reads", "n_reads", lambda v: int(float(v))),
    "nReps": (None, "replicates", int),
}


def _to_number(value: Any, convert):
    # YAML 1.1 reads "1e7" as a string
    try:
        return convert(value)
    except (TypeError, ValueError):
        raise ParameterError(f"Cannot interpret {value!r} as a number")


def sample_from_entry(
    key: str,
    entry: Dict[str, Any],
    base: Optional[SimConfig] = None,
) -> SimConfig:
    """
    Build one sample's config from a sample-sheet entry.

    Entries may use the nested SimConfig layout, the flat pipeline keys
    (Pbind_given_back, Pback_given_back, EF, nReads, nReps, name), or both.
    """
    entry = dict(entry or {})
    nested: Dict[str, Any] = {}

    for flat_key, (group, attr, convert) in PIPELINE_KEYS.items():
        if flat_key not in entry:
            continue
        value = _to_number(entry.pop(flat_key), convert)
        if group is None:
            nested[attr] = value
        else:
            nested.setdefault(group, {})[attr] = value

    for group, values in list(entry.items()):
        if isinstance(values, dict) and group in nested and isinstance(nested[group], dict):
            nested[group].update(values)
        else:
            nested[group] = values
    nested.setdefault("name", key)

    return SimConfig.from_dict(nested, base=base)


def load_samples(path: Union[str, Path]) -> List[SimConfig]:
    """
    Load a sample sheet.

    The file holds an optional ``defaults`` block (nested SimConfig keys)
    and a ``samples`` mapping of sample key -> entry.
    """
    with open(path, "r") as f:
        d = yaml.safe_load(f) or {}

    if "samples" not in d:
        return [SimConfig.from_dict(d)]

    base = SimConfig.from_dict(d.get("defaults") or {})
    samples = d["samples"]
    if not isinstance(samples, dict) or not samples:
        raise ParameterError(f"'samples' in {path} must be a non-empty mapping")

    return [sample_from_entry(key, entry, base=base) for key, entry in samples.items()]
