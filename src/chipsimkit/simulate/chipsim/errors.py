"""
Exceptions raised by the simulation core.

Every error names the stage it came from and carries the parameters that
led to it, so the caller can adjust the configuration.
"""

from typing import Any, Dict, Optional


class SimulationError(Exception):
    """Base class for simulation failures."""

    def __init__(
        self,
        message: str,
        stage: str = "config",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.context = dict(context or {})

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            text = f"{text} ({details})"
        return text


class ParameterError(SimulationError, ValueError):
    """Invalid configuration, detected before any random draw."""


class DegenerateRealizationError(SimulationError, RuntimeError):
    """A realization lacked a required region kind after all retries."""


class NumericError(SimulationError, ArithmeticError):
    """A density could not be turned into a probability mass function."""
