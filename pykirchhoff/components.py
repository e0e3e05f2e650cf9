"""Circuit component factory functions (functional style).

Default values follow the classroom kit: a 6 V battery and 50 Ohm
resistors and bulbs.
"""

from __future__ import annotations

from typing import Hashable

from .circuit import Circuit, ComponentSpec, ComponentRef, JUNCTION_KIND, check_value
from .errors import InvalidCircuitError


def Battery(
    circuit: Circuit,
    positive: Hashable,
    negative: Hashable,
    *,
    name: str,
    value: float = 6.0,
) -> tuple[Circuit, ComponentRef]:
    """
    Create an ideal battery (fixed EMF, no internal resistance).

    Args:
        circuit: Circuit to add to
        positive: Positive terminal position or key
        negative: Negative terminal position or key
        name: Component name (required, unique)
        value: EMF in volts

    Returns:
        (new_circuit, component_ref)

    Example:
        circuit, b1 = Battery(circuit, (0, 0), (0, 2), name="B1", value=9.0)
    """
    spec = ComponentSpec(
        name=name,
        kind="Battery",
        endpoints=(positive, negative),
        value=check_value("Battery", value, name),
    )
    return circuit.add_component(spec)


def Resistor(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    *,
    name: str,
    value: float = 50.0,
) -> tuple[Circuit, ComponentRef]:
    """
    Create a resistor.

    Args:
        circuit: Circuit to add to
        end_a: First terminal (positive for the current sign convention)
        end_b: Second terminal
        name: Component name (required, unique)
        value: Resistance in Ohms, finite and positive

    Returns:
        (new_circuit, component_ref)

    Example:
        circuit, r1 = Resistor(circuit, (0, 0), (2, 0), name="R1", value=10.0)
    """
    spec = ComponentSpec(
        name=name,
        kind="Resistor",
        endpoints=(end_a, end_b),
        value=check_value("Resistor", value, name),
    )
    return circuit.add_component(spec)


def Bulb(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    *,
    name: str,
    value: float = 50.0,
) -> tuple[Circuit, ComponentRef]:
    """
    Create a bulb. Electrically a resistor; kept as its own kind so
    callers can render brightness from branch.power.
    """
    spec = ComponentSpec(
        name=name,
        kind="Bulb",
        endpoints=(end_a, end_b),
        value=check_value("Bulb", value, name),
    )
    return circuit.add_component(spec)


def Switch(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    *,
    name: str,
    closed: bool = False,
) -> tuple[Circuit, ComponentRef]:
    """
    Create an on/off switch.

    Closed and open resistances come from SolverOptions
    (closed_switch_resistance, open_switch_resistance).
    Flip it later with circuit.toggle(name).
    """
    spec = ComponentSpec(
        name=name,
        kind="Switch",
        endpoints=(end_a, end_b),
        closed=bool(closed),
    )
    return circuit.add_component(spec)


def Wire(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    *,
    name: str,
) -> tuple[Circuit, ComponentRef]:
    """Create a wire (SolverOptions.wire_resistance). Its current is reported like any branch."""
    spec = ComponentSpec(name=name, kind="Wire", endpoints=(end_a, end_b))
    return circuit.add_component(spec)


def Junction(
    circuit: Circuit,
    *endpoints: Hashable,
    name: str,
) -> tuple[Circuit, ComponentRef]:
    """
    Declare endpoints to be one electrical node regardless of distance.

    A junction carries no current. A junction whose endpoints touch no
    component still becomes a (isolated) node.

    Example:
        circuit, j = Junction(circuit, (0, 0), "bus", (9, 9), name="J1")
    """
    if not endpoints:
        raise InvalidCircuitError(f"Junction {name} needs at least one endpoint")
    spec = ComponentSpec(name=name, kind=JUNCTION_KIND, endpoints=tuple(endpoints))
    return circuit.add_component(spec)
