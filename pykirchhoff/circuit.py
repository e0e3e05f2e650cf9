"""Circuit description for the caller side (immutable/functional style)."""

from __future__ import annotations

import math
from typing import Hashable, NamedTuple, TYPE_CHECKING

from .errors import InvalidCircuitError
from .network import SOURCE_KINDS, RESISTIVE_KINDS, BRANCH_KINDS

if TYPE_CHECKING:
    from .analysis import Analysis
    from .options import SolverOptions
    from .topology import Topology


JUNCTION_KIND = "Junction"


class ComponentRef(NamedTuple):
    """Reference to a component for later lookups."""
    name: str
    kind: str  # "Battery", "Resistor", "Bulb", "Switch", "Wire", "Junction"


class ComponentSpec(NamedTuple):
    """
    A placed component.

    endpoints holds the terminal positions (tuples of coordinates) or any
    hashable keys; for two-terminal parts it is (positive, negative).
    A Junction lists every endpoint it ties together.
    """
    name: str
    kind: str
    endpoints: tuple[Hashable, ...]
    value: float = 0.0
    closed: bool = True


def check_value(kind: str, value: float, name: str = "?") -> float:
    """
    Validate the nominal value of a component kind.

    Returns the value as float.

    Raises:
        InvalidCircuitError: non-finite EMF, non-positive or non-finite resistance
    """
    value = float(value)
    if kind in SOURCE_KINDS:
        if not math.isfinite(value):
            raise InvalidCircuitError(f"{name}: EMF must be finite, got {value}")
    elif kind in RESISTIVE_KINDS:
        if not (math.isfinite(value) and value > 0):
            raise InvalidCircuitError(f"{name}: resistance must be finite and positive, got {value}")
    return value


class Circuit(NamedTuple):
    """
    Immutable list of placed components.

    Build using functional style:
        circuit = Circuit()
        circuit, b1 = Battery(circuit, (0, 0), (4, 0), name="B1", value=12.0)
        circuit, r1 = Resistor(circuit, (0, 0), (4, 0), name="R1", value=10.0)
        analysis = circuit.solve()
    """
    components: tuple[ComponentSpec, ...] = ()
    joins: tuple[tuple[Hashable, ...], ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(c.name for c in self.components)

    def component(self, name: str) -> ComponentSpec:
        """
        Look up a component by name.

        Raises:
            KeyError: if no component has that name
        """
        for spec in self.components:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def add_component(self, spec: ComponentSpec) -> tuple[Circuit, ComponentRef]:
        """
        Add a component specification.

        Returns (new_circuit, component_ref).
        """
        if spec.kind not in BRANCH_KINDS and spec.kind != JUNCTION_KIND:
            raise InvalidCircuitError(f"Unknown component kind: {spec.kind}")
        if spec.name in self.names:
            raise InvalidCircuitError(f"Duplicate component name: {spec.name}")
        new_circuit = self._replace(components=self.components + (spec,))
        return new_circuit, ComponentRef(spec.name, spec.kind)

    def join(self, *endpoints: Hashable) -> Circuit:
        """Declare endpoints to be one node without adding a component."""
        if len(endpoints) < 2:
            raise InvalidCircuitError("join needs at least two endpoints")
        return self._replace(joins=self.joins + (tuple(endpoints),))

    def remove(self, name: str) -> Circuit:
        """Return a circuit without the named component."""
        self.component(name)
        return self._replace(components=tuple(c for c in self.components if c.name != name))

    def _update(self, name: str, **changes) -> Circuit:
        return self._replace(components=tuple(
            c._replace(**changes) if c.name == name else c for c in self.components
        ))

    def toggle(self, name: str) -> Circuit:
        """Flip a switch. Returns the new circuit."""
        spec = self.component(name)
        if spec.kind != "Switch":
            raise InvalidCircuitError(f"{name} is a {spec.kind}, not a Switch")
        return self._update(name, closed=not spec.closed)

    def with_value(self, name: str, value: float) -> Circuit:
        """Change the EMF or resistance of a component."""
        spec = self.component(name)
        if spec.kind not in SOURCE_KINDS + RESISTIVE_KINDS:
            raise InvalidCircuitError(f"{name} ({spec.kind}) has no adjustable value")
        return self._update(name, value=check_value(spec.kind, value, name))

    def build(self, tolerance: float | None = None) -> Topology:
        """
        Reduce the placed components to nodes and branches.

        Args:
            tolerance: Merge distance for positional endpoints
                       (defaults to SolverOptions.merge_tolerance)
        """
        from .topology import build_topology
        return build_topology(self, tolerance)

    def solve(self, options: SolverOptions | None = None, **overrides) -> Analysis:
        """Build, solve and validate this circuit in one call."""
        from .analysis import analyze
        return analyze(self, options, **overrides)
