"""One-call build, solve and validate for a Circuit."""

from __future__ import annotations

import logging
from typing import Hashable, NamedTuple

from .circuit import Circuit
from .network import Node, Branch
from .options import SolverOptions, resolve_options
from .solver import SolveResult, solve
from .topology import Topology, build_topology
from .validation import ValidationWarning, validate

logger = logging.getLogger(__name__)


class Analysis(NamedTuple):
    """Everything a caller needs to display one solved circuit."""
    topology: Topology
    result: SolveResult
    warnings: list[ValidationWarning]

    @property
    def converged(self) -> bool:
        return self.result.converged

    def branch(self, name: str) -> Branch:
        return self.topology.branch(name)

    def node_at(self, endpoint: Hashable) -> Node:
        return self.topology.node_at(endpoint)


def analyze(circuit: Circuit, options: SolverOptions | None = None, **overrides) -> Analysis:
    """
    Build the topology of circuit, solve it and validate the result.

    The returned objects are fresh for every call; nothing is cached
    between calls.

    Args:
        circuit: Placed components
        options: SolverOptions (defaults if None)
        **overrides: Replace individual option fields

    Returns:
        Analysis(topology, result, warnings)
    """
    options = resolve_options(options, **overrides)
    topology = build_topology(circuit, options.merge_tolerance)
    result = solve(topology.nodes, topology.branches, options)
    warnings = validate(topology.nodes, topology.branches, options)
    logger.debug(
        "Analysis of %d components: converged=%s, %d warning(s)",
        len(circuit.components), result.converged, len(warnings),
    )
    return Analysis(topology, result, warnings)
