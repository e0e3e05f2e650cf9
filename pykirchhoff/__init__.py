"""PyKirchhoff - JAX-backed DC circuit solver for classroom circuits.

Batteries, resistors, bulbs, switches and wires are placed by position (or
by key); the topology builder merges touching endpoints into nodes, and the
solver relaxes node voltages until Kirchhoff's current law holds.

Usage:
    from pykirchhoff import Circuit, Battery, Resistor, Switch
    circuit = Circuit()
    circuit, b1 = Battery(circuit, (0, 0), (0, 2), name="B1", value=12.0)
    circuit, r1 = Resistor(circuit, (0, 0), (0, 2), name="R1", value=10.0)
    analysis = circuit.solve()
    analysis.branch("R1").current  # 1.2

Lower level:
    topology = build_topology(circuit)
    result = solve(topology.nodes, topology.branches)
    warnings = validate(topology.nodes, topology.branches)
"""

import jax

# Voltages are relaxed to ~1e-6 V, beyond float32 resolution at 12 V
jax.config.update("jax_enable_x64", True)

from .errors import CircuitError, InvalidCircuitError, UnmeasurableError
from .options import SolverOptions, DEFAULT_OPTIONS
from .network import Node, Branch
from .circuit import Circuit, ComponentRef, ComponentSpec
from .components import Battery, Resistor, Bulb, Switch, Wire, Junction
from .subcircuits import Chain, ChainRefs, Series, SeriesRefs, Parallel
from .topology import Topology, build_topology
from .solver import SolveResult, SupernodeMap, reduce_supernodes, solve
from .measure import measure_voltage, measure_current
from .validation import ValidationWarning, WarningKind, validate
from .analysis import Analysis, analyze

__version__ = "0.1.0"
__all__ = [
    # Errors
    "CircuitError",
    "InvalidCircuitError",
    "UnmeasurableError",
    # Configuration
    "SolverOptions",
    "DEFAULT_OPTIONS",
    # Circuit building
    "Circuit",
    "ComponentRef",
    "ComponentSpec",
    "Battery",
    "Resistor",
    "Bulb",
    "Switch",
    "Wire",
    "Junction",
    "Chain",
    "ChainRefs",
    "Series",
    "SeriesRefs",
    "Parallel",
    # Graph
    "Node",
    "Branch",
    "Topology",
    "build_topology",
    # Solving
    "SolveResult",
    "SupernodeMap",
    "reduce_supernodes",
    "solve",
    "measure_voltage",
    "measure_current",
    # Validation
    "ValidationWarning",
    "WarningKind",
    "validate",
    "Analysis",
    "analyze",
    "__version__",
]
