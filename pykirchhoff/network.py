"""Node and Branch classes for the solved circuit graph.

Unlike the builder types in circuit.py these are mutable: a solve writes its
results (node voltages, branch currents and drops) onto them in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Hashable, Iterable, Optional, TYPE_CHECKING

import networkx as nx

if TYPE_CHECKING:
    from .options import SolverOptions


SOURCE_KINDS = ("Battery",)
RESISTIVE_KINDS = ("Resistor", "Bulb")
SWITCH_KINDS = ("Switch", "Wire")
BRANCH_KINDS = SOURCE_KINDS + RESISTIVE_KINDS + SWITCH_KINDS


@dataclass(eq=False)
class Node:
    """An equipotential point joining one or more branch terminals."""
    id: str
    voltage: float = 0.0
    is_ground: bool = False
    circuit: int = -1  # index of the connected subgraph, -1 if not assigned
    endpoints: tuple[Hashable, ...] = ()

    def __repr__(self) -> str:
        mark = ", ground" if self.is_ground else ""
        return f"Node({self.id!r}, {self.voltage:.6g} V{mark})"


@dataclass(eq=False)
class Branch:
    """
    A two-terminal element between two nodes.

    value is the EMF (volts) for a Battery and the resistance (ohms) for a
    Resistor or Bulb; switches and wires take their resistance from
    SolverOptions. current and voltage_drop stay None until solved.
    """
    id: str
    kind: str
    positive: Node
    negative: Node
    value: float = 0.0
    closed: bool = True
    current: Optional[float] = None
    voltage_drop: Optional[float] = None

    @property
    def is_source(self) -> bool:
        return self.kind in SOURCE_KINDS

    @property
    def is_self_loop(self) -> bool:
        return self.positive is self.negative

    @property
    def is_solved(self) -> bool:
        return self.current is not None and self.voltage_drop is not None

    @property
    def power(self) -> Optional[float]:
        """Watts dissipated (resistive) or delivered (sources); None until solved."""
        if not self.is_solved:
            return None
        return self.current * self.voltage_drop

    def other(self, node: Node) -> Node:
        """Terminal at the far end from node."""
        return self.negative if node is self.positive else self.positive

    def resistance(self, options: SolverOptions) -> float:
        """
        Effective resistance used by the solver.

        Raises:
            ValueError: for sources, which have no resistance
        """
        if self.kind in RESISTIVE_KINDS:
            return float(self.value)
        if self.kind == "Switch":
            if self.closed:
                return options.closed_switch_resistance
            return options.open_switch_resistance
        if self.kind == "Wire":
            return options.wire_resistance
        raise ValueError(f"Branch {self.id} ({self.kind}) has no resistance")

    def clear_results(self) -> None:
        self.current = None
        self.voltage_drop = None


def circuit_graph(nodes: Iterable[Node], branches: Iterable[Branch]) -> nx.MultiGraph:
    """
    Undirected multigraph with Node objects as vertices, one edge per branch.

    Every branch (open switches included) connects its two terminals.
    """
    graph = nx.MultiGraph()
    graph.add_nodes_from(nodes)
    for b in branches:
        graph.add_edge(b.positive, b.negative, branch=b)
    return graph


def connected_circuits(nodes: Iterable[Node], branches: Iterable[Branch]) -> dict[int, int]:
    """
    Label connected subgraphs.

    Returns {id(node): circuit_index}, indices numbered in node order.
    """
    nodes = list(nodes)
    graph = circuit_graph(nodes, branches)
    circuits: dict[int, int] = {}
    count = 0
    for n in nodes:
        if id(n) in circuits:
            continue
        for member in nx.node_connected_component(graph, n):
            circuits[id(member)] = count
        count += 1
    return circuits


def nominate_grounds(
    nodes: Iterable[Node],
    branches: Iterable[Branch],
    circuits: dict[int, int],
) -> dict[int, Node]:
    """
    Pick one reference node per subgraph.

    Negative terminal of the first source in branch order, else the first
    node of the subgraph. Returns {circuit_index: ground_node}.
    """
    grounds: dict[int, Node] = {}
    for b in branches:
        if b.is_source:
            grounds.setdefault(circuits[id(b.negative)], b.negative)
    for n in nodes:
        grounds.setdefault(circuits[id(n)], n)
    return grounds
