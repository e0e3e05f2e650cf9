"""Solver configuration (immutable, with defaults)."""

from __future__ import annotations

import math
from typing import NamedTuple


class SolverOptions(NamedTuple):
    """
    Tuning constants for topology building, relaxation and validation.

    Switch and wire resistances approximate ideal behaviour with finite
    numbers. An open switch leaks at most EMF / open_switch_resistance
    (12 nA for 12 V across 1 GOhm).

    Override a field with options._replace(...) or SolverOptions.from_mapping().
    """
    max_iterations: int = 10000              # sweeps; a 60-resistor chain needs ~6000
    convergence_threshold: float = 1e-6      # volts, max |dV| per sweep
    relaxation: float = 1.0                  # SOR factor, 1.0 = plain Gauss-Seidel
    closed_switch_resistance: float = 1e-6   # ohms
    open_switch_resistance: float = 1e9      # ohms
    wire_resistance: float = 1e-6            # ohms
    short_resistance: float = 1e-3           # ohms, at or below this a branch is rigid
    merge_tolerance: float = 0.5             # scene units
    validation_tolerance: float = 1e-3

    @classmethod
    def from_mapping(cls, params: dict | None = None) -> SolverOptions:
        """
        Build options from a dict, falling back to defaults for missing keys.

        Raises:
            ValueError: for keys that are not option names
        """
        params = params or {}
        unknown = set(params) - set(cls._fields)
        if unknown:
            raise ValueError(f"Unknown solver options: {sorted(unknown)}")
        return cls(**{**cls._field_defaults, **params})

    def validated(self) -> SolverOptions:
        """Return self, or raise ValueError if any value is out of range."""
        if int(self.max_iterations) != self.max_iterations or self.max_iterations < 0:
            raise ValueError(f"max_iterations must be a non-negative integer, got {self.max_iterations}")
        if not (math.isfinite(self.convergence_threshold) and self.convergence_threshold > 0):
            raise ValueError(f"convergence_threshold must be positive, got {self.convergence_threshold}")
        if not 0.0 < self.relaxation < 2.0:
            raise ValueError(f"relaxation must lie in (0, 2), got {self.relaxation}")
        for name in ("closed_switch_resistance", "open_switch_resistance",
                     "wire_resistance", "short_resistance"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be finite and positive, got {value}")
        if self.open_switch_resistance <= self.short_resistance:
            raise ValueError("open_switch_resistance must exceed short_resistance")
        if not (math.isfinite(self.merge_tolerance) and self.merge_tolerance >= 0):
            raise ValueError(f"merge_tolerance must be non-negative, got {self.merge_tolerance}")
        if not (math.isfinite(self.validation_tolerance) and self.validation_tolerance > 0):
            raise ValueError(f"validation_tolerance must be positive, got {self.validation_tolerance}")
        return self


DEFAULT_OPTIONS = SolverOptions()


def resolve_options(options: SolverOptions | None = None, **overrides) -> SolverOptions:
    """Merge keyword overrides into options (or the defaults) and validate."""
    base = options if options is not None else DEFAULT_OPTIONS
    if overrides:
        unknown = set(overrides) - set(SolverOptions._fields)
        if unknown:
            raise ValueError(f"Unknown solver options: {sorted(unknown)}")
        base = base._replace(**overrides)
    return base.validated()
