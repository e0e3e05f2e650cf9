"""Reusable series/parallel building blocks (functional style).

A factory here is any callable (circuit, end_a, end_b) -> (circuit, ref),
typically a lambda around Resistor, Bulb, Switch or another subcircuit.
Internal connection points are endpoint keys, so they can be looked up
afterwards with analysis.node_at(key).
"""

from __future__ import annotations

from typing import Callable, Hashable, NamedTuple

from .circuit import Circuit, ComponentRef
from .errors import InvalidCircuitError

Factory = Callable[[Circuit, Hashable, Hashable], tuple]


class ChainRefs(NamedTuple):
    """References to the elements of a chain and the taps between them."""
    elements: tuple
    taps: tuple[Hashable, ...]  # len(elements) - 1 internal endpoint keys


class SeriesRefs(NamedTuple):
    first: ComponentRef
    second: ComponentRef
    mid: Hashable


def Chain(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    factories: list[Factory],
    *,
    prefix: str = "chain",
) -> tuple[Circuit, ChainRefs]:
    """
    Connect any number of two-terminal elements end to end.

    Topology:
        end_a ──[f0]──(prefix_0)──[f1]──(prefix_1)── ... ──[fN]── end_b

    Each tap is the key f"{prefix}_{k}"; use a distinct prefix per chain
    in one circuit or the taps will merge.

    Returns:
        (new_circuit, ChainRefs(elements, taps))
    """
    if not factories:
        raise InvalidCircuitError(f"Chain {prefix} needs at least one element")
    taps = tuple(f"{prefix}_{k}" for k in range(len(factories) - 1))
    points = (end_a,) + taps + (end_b,)
    elements = []
    for factory, a, b in zip(factories, points, points[1:]):
        circuit, ref = factory(circuit, a, b)
        elements.append(ref)
    return circuit, ChainRefs(tuple(elements), taps)


def Series(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    elem1_factory: Factory,
    elem2_factory: Factory,
    prefix: str = "ser",
) -> tuple[Circuit, SeriesRefs]:
    """
    Two elements in series with a named midpoint.

    The midpoint key is f"{prefix}_mid":

        circuit, (r1, lamp, mid) = Series(
            circuit, "top", "gnd",
            lambda c, a, b: Resistor(c, a, b, name="R1", value=10.0),
            lambda c, a, b: Bulb(c, a, b, name="L1", value=20.0),
            prefix="lamp",
        )
        circuit.solve().node_at(mid).voltage  # lamp_mid
    """
    mid = f"{prefix}_mid"
    circuit, first = elem1_factory(circuit, end_a, mid)
    circuit, second = elem2_factory(circuit, mid, end_b)
    return circuit, SeriesRefs(first, second, mid)


def Parallel(
    circuit: Circuit,
    end_a: Hashable,
    end_b: Hashable,
    *factories: Factory,
) -> tuple[Circuit, tuple]:
    """
    Connect two or more elements across the same pair of endpoints.

    Returns:
        (new_circuit, refs in factory order)
    """
    if len(factories) < 2:
        raise InvalidCircuitError("Parallel needs at least two elements")
    refs = []
    for factory in factories:
        circuit, ref = factory(circuit, end_a, end_b)
        refs.append(ref)
    return circuit, tuple(refs)
