"""Multimeter-style reads over a solved graph."""

from __future__ import annotations

from .errors import UnmeasurableError
from .network import Node, Branch
from .solver import SolveResult


def measure_voltage(result: SolveResult, node_a: Node, node_b: Node) -> float:
    """
    Potential difference V(node_a) - V(node_b).

    Nodes reached from the rest of their circuit only through open switches
    form an island whose potential is set by leakage of order
    1/open_switch_resistance. Relaxation stops once a sweep changes it by
    less than convergence_threshold, which happens long before it settles,
    so a read across one of those open switches is not meaningful. For
    example, a bulb between two open switches in series with a 12 V battery
    reads 12 V across the first switch and 0 V across the second, where the
    ideal split is 6 V each. The total across the pair and every current
    through the island (about 0 A) are still correct.

    Raises:
        UnmeasurableError: if either node is not part of the graph that
            produced result, or the nodes lie in different subgraphs
    """
    for node in (node_a, node_b):
        if result.nodes.get(node.id) is not node:
            raise UnmeasurableError(f"Node {node.id} is not part of the solved circuit")
    if result.circuits[node_a.id] != result.circuits[node_b.id]:
        raise UnmeasurableError(
            f"Nodes {node_a.id} and {node_b.id} are in separate circuits; "
            "there is no common reference between them"
        )
    return result.voltages[node_a.id] - result.voltages[node_b.id]


def measure_current(branch: Branch) -> float:
    """
    Solved current through a branch (delivered current for sources).

    Raises:
        UnmeasurableError: if the branch has not been solved
    """
    if branch.current is None:
        raise UnmeasurableError(f"Branch {branch.id} has not been solved")
    return branch.current
