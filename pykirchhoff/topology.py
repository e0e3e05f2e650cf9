"""Topology builder: reduce placed component endpoints to nodes and branches.

Endpoints are positions (sequences of finite coordinates, merged when closer
than the tolerance) or arbitrary hashable keys (merged on equality).
Junctions tie endpoints together explicitly. Merging is transitive.
"""

from __future__ import annotations

import logging
import math
from typing import Hashable, Iterable, NamedTuple

import jax.numpy as jnp
import networkx as nx

from .circuit import Circuit, ComponentSpec, JUNCTION_KIND
from .network import Node, Branch, BRANCH_KINDS, connected_circuits, nominate_grounds
from .options import DEFAULT_OPTIONS

logger = logging.getLogger(__name__)


class Topology(NamedTuple):
    """Nodes and branches produced from a component list."""
    nodes: tuple[Node, ...]
    branches: tuple[Branch, ...]
    warnings: tuple[str, ...] = ()  # components or endpoints that were skipped
    tolerance: float = DEFAULT_OPTIONS.merge_tolerance

    @property
    def grounds(self) -> tuple[Node, ...]:
        return tuple(n for n in self.nodes if n.is_ground)

    def branch(self, name: str) -> Branch:
        """
        Look up a branch by component name.

        Raises:
            KeyError: if no branch has that name
        """
        for b in self.branches:
            if b.id == name:
                return b
        raise KeyError(name)

    def node_at(self, endpoint: Hashable) -> Node:
        """
        Node that owns an endpoint: exact key first, then nearest position
        within tolerance.

        Raises:
            KeyError: if no node owns the endpoint
        """
        key = _normalize(endpoint)
        if key is None:
            raise KeyError(endpoint)
        best, best_dist = None, math.inf
        for n in self.nodes:
            for e in n.endpoints:
                if e == key:
                    return n
                if _is_position(key) and _is_position(e) and len(e[1]) == len(key[1]):
                    d = math.dist(e[1], key[1])
                    if d <= self.tolerance and d < best_dist:
                        best, best_dist = n, d
        if best is None:
            raise KeyError(endpoint)
        return best


def _normalize(endpoint):
    """
    Canonical form of an endpoint.

    Returns ("pos", coords) for numeric sequences, ("key", endpoint) for other
    hashables, or None if the endpoint cannot be resolved.
    """
    if endpoint is None:
        return None
    if isinstance(endpoint, (str, bytes)):
        return ("key", endpoint)
    try:
        coords = tuple(float(x) for x in endpoint)
    except TypeError:
        coords = None  # not iterable: a scalar key
    except ValueError:
        coords = None  # iterable of non-numbers, e.g. ("bus", "a")
    if coords is not None:
        if not coords or not all(math.isfinite(x) for x in coords):
            return None
        return ("pos", coords)
    try:
        hash(endpoint)
    except TypeError:
        return None
    if isinstance(endpoint, float) and not math.isfinite(endpoint):
        return None
    return ("key", endpoint)


def _is_position(key) -> bool:
    return key[0] == "pos"


def _merge_positions(graph: nx.Graph, slots: list, tolerance: float) -> None:
    """Link every pair of position slots closer than tolerance."""
    idx = [i for i, key in enumerate(slots) if _is_position(key)]
    if len(idx) < 2:
        return
    points = jnp.asarray([slots[i][1] for i in idx], dtype=jnp.float64)
    diff = points[:, None, :] - points[None, :, :]
    dist2 = jnp.sum(diff * diff, axis=-1)
    close = jnp.triu(dist2 <= tolerance * tolerance, k=1)
    rows, cols = jnp.nonzero(close)
    graph.add_edges_from(
        (idx[a], idx[b]) for a, b in zip(rows.tolist(), cols.tolist())
    )


def build_topology(
    components: Iterable[ComponentSpec] | Circuit,
    tolerance: float | None = None,
    *,
    joins: Iterable[tuple[Hashable, ...]] = (),
) -> Topology:
    """
    Merge component endpoints into nodes and create one branch per component.

    Components with an unresolvable endpoint, an unknown kind or a repeated
    name are skipped with a warning; the build always completes.

    Args:
        components: ComponentSpec items (or a Circuit)
        tolerance: Merge distance for positions (default SolverOptions.merge_tolerance)
        joins: Extra groups of endpoints asserted to be one node

    Returns:
        Topology with nodes, branches and skip warnings. Each connected
        subgraph has its circuit index set and one ground node flagged.
    """
    if isinstance(components, Circuit):
        joins = tuple(components.joins) + tuple(joins)
        components = components.components
    if tolerance is None:
        tolerance = DEFAULT_OPTIONS.merge_tolerance
    if not (math.isfinite(tolerance) and tolerance >= 0):
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")

    warnings: list[str] = []
    slots: list = []            # canonical endpoint per slot
    slot_of: dict = {}          # canonical endpoint -> slot
    graph = nx.Graph()          # slot -> slot edges: same electrical node
    dim = None

    def slot(key) -> int:
        if key not in slot_of:
            slot_of[key] = len(slots)
            graph.add_node(len(slots))
            slots.append(key)
        return slot_of[key]

    def resolve(endpoint):
        nonlocal dim
        key = _normalize(endpoint)
        if key is not None and _is_position(key):
            if dim is None:
                dim = len(key[1])
            elif len(key[1]) != dim:
                return None
        return key

    def skip(message: str) -> None:
        logger.warning("Skipping %s", message)
        warnings.append(message)

    accepted: list[tuple[ComponentSpec, int, int]] = []
    groups: list[list[int]] = []
    seen: set[str] = set()

    for spec in components:
        if spec.name in seen:
            skip(f"{spec.name}: duplicate component name")
            continue
        if spec.kind == JUNCTION_KIND:
            group = []
            for endpoint in spec.endpoints:
                key = resolve(endpoint)
                if key is None:
                    skip(f"{spec.name}: unresolvable junction endpoint {endpoint!r}")
                    continue
                group.append(slot(key))
            seen.add(spec.name)
            groups.append(group)
            continue
        if spec.kind not in BRANCH_KINDS:
            skip(f"{spec.name}: unknown component kind {spec.kind!r}")
            continue
        if len(spec.endpoints) != 2:
            skip(f"{spec.name}: expected 2 endpoints, got {len(spec.endpoints)}")
            continue
        keys = [resolve(e) for e in spec.endpoints]
        if any(k is None for k in keys):
            bad = [e for e, k in zip(spec.endpoints, keys) if k is None]
            skip(f"{spec.name}: unresolvable endpoint {bad[0]!r}")
            continue
        seen.add(spec.name)
        accepted.append((spec, slot(keys[0]), slot(keys[1])))

    for endpoints in joins:
        group = []
        for endpoint in endpoints:
            key = resolve(endpoint)
            if key is None:
                skip(f"join: unresolvable endpoint {endpoint!r}")
                continue
            group.append(slot(key))
        groups.append(group)

    _merge_positions(graph, slots, tolerance)
    for group in groups:
        nx.add_path(graph, group)

    # number nodes by their earliest slot so ids follow input order
    node_of_slot: dict[int, Node] = {}
    nodes_list: list[Node] = []
    for i in range(len(slots)):
        if i in node_of_slot:
            continue
        members = sorted(nx.node_connected_component(graph, i))
        node = Node(f"n{len(nodes_list)}", endpoints=tuple(slots[j] for j in members))
        nodes_list.append(node)
        for j in members:
            node_of_slot[j] = node

    nodes = tuple(nodes_list)
    branches = tuple(
        Branch(
            id=spec.name,
            kind=spec.kind,
            positive=node_of_slot[a],
            negative=node_of_slot[b],
            value=float(spec.value),
            closed=bool(spec.closed),
        )
        for spec, a, b in accepted
    )

    circuits = connected_circuits(nodes, branches)
    for n in nodes:
        n.circuit = circuits[id(n)]
    for ground in nominate_grounds(nodes, branches, circuits).values():
        ground.is_ground = True

    logger.debug(
        "Built topology: %d endpoints -> %d nodes, %d branches, %d skipped",
        len(slots), len(nodes), len(branches), len(warnings),
    )
    return Topology(nodes, branches, tuple(warnings), float(tolerance))
