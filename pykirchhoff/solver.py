"""
Iterative nodal solver using successive (Gauss-Seidel) relaxation.

For each free supernode S the sweep applies KCL:

    V_S = sum(G_b * (V_other + o_other - o_member)) / sum(G_b)

where the sums run over the resistive branches leaving S, o_x is the fixed
offset of node x inside its supernode, and G_b = 1/R_b.

Rigid branches (ideal sources and near-zero resistances) cannot be expressed
as conductances. They are merged into supernodes first, so the relaxation
only ever sees finite, positive conductances. Their currents are recovered
afterwards from KCL over each supernode's spanning tree.
"""

from __future__ import annotations

import logging
import math
from collections import deque
from typing import NamedTuple, Sequence

import jax
import jax.numpy as jnp
from jax import Array

from .errors import InvalidCircuitError
from .network import (
    Node,
    Branch,
    BRANCH_KINDS,
    RESISTIVE_KINDS,
    connected_circuits,
    nominate_grounds,
)
from .options import SolverOptions, resolve_options

logger = logging.getLogger(__name__)

OFFSET_TOLERANCE = 1e-9  # volts; loop check for rigid branches


class SolveResult(NamedTuple):
    """Outcome of one solve. Per-branch results live on the branches."""
    converged: bool
    iterations: int
    max_change: float                # largest |dV| in the last sweep
    voltages: dict[str, float]       # node id -> volts
    circuits: dict[str, int]         # node id -> subgraph index
    grounds: tuple[str, ...]         # ground node id per subgraph
    nodes: dict[str, Node]           # node id -> the solved Node object
    conflicts: tuple[str, ...] = ()  # sources that contradict another rigid loop


class SupernodeMap(NamedTuple):
    """
    Nodes grouped by rigid branches.

    For node i: V_i = V[index[i]] + offset[i].
    """
    index: list[int]          # node -> supernode
    offset: list[float]       # node voltage minus supernode voltage
    roots: list[int]          # supernode -> node index of its reference member
    rigid: set[int]           # branch indices merged into a supernode
    tree: list[int]           # rigid branches forming each supernode's spanning tree
    conflicts: list[int]      # rigid branches whose offset contradicts the tree


def _check_graph(nodes: Sequence[Node], branches: Sequence[Branch]) -> dict[int, int]:
    """
    Reject malformed graphs before solving.

    Returns {id(node): position in nodes}.

    Raises:
        InvalidCircuitError: for duplicate node ids, unknown kinds, terminals
            outside the node list and invalid nominal values
    """
    position: dict[int, int] = {}
    ids: set[str] = set()
    for i, n in enumerate(nodes):
        if n.id in ids:
            raise InvalidCircuitError(f"Duplicate node id: {n.id}")
        ids.add(n.id)
        position[id(n)] = i

    for b in branches:
        if b.kind not in BRANCH_KINDS:
            raise InvalidCircuitError(f"Unknown component kind: {b.kind}")
        for terminal in (b.positive, b.negative):
            if id(terminal) not in position:
                raise InvalidCircuitError(
                    f"Branch {b.id} references node {getattr(terminal, 'id', terminal)!r} "
                    "which is not in the node list"
                )
        value = float(b.value)
        if b.is_source and not math.isfinite(value):
            raise InvalidCircuitError(f"Branch {b.id}: EMF must be finite, got {value}")
        if b.kind in RESISTIVE_KINDS and not (math.isfinite(value) and value > 0):
            raise InvalidCircuitError(
                f"Branch {b.id}: resistance must be finite and positive, got {value}"
            )
    return position


def _pick_grounds(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    circuits: dict[int, int],
) -> dict[int, Node]:
    """Use flagged grounds where present, nominate the rest."""
    flagged: dict[int, Node] = {}
    for n in nodes:
        if n.is_ground:
            c = circuits[id(n)]
            if c in flagged:
                raise InvalidCircuitError(
                    f"Nodes {flagged[c].id} and {n.id} are both flagged as ground "
                    "in one connected circuit"
                )
            flagged[c] = n
    return {**nominate_grounds(nodes, branches, circuits), **flagged}


def reduce_supernodes(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    options: SolverOptions,
    position: dict[int, int] | None = None,
) -> SupernodeMap:
    """
    Merge nodes joined by rigid branches (weighted union-find).

    Sources are merged first (V+ - V- = EMF), then branches whose resistance
    is at or below options.short_resistance (V+ - V- = 0). A rigid branch
    closing a loop is redundant when its offset agrees with the loop and a
    conflict otherwise. A conflicting near-short is handed back to the
    relaxation as an ordinary resistive branch.
    """
    if position is None:
        position = {id(n): i for i, n in enumerate(nodes)}
    parent = list(range(len(nodes)))
    pot = [0.0] * len(nodes)  # V_i - V_parent(i)

    def find(i: int) -> tuple[int, float]:
        path = []
        while parent[i] != i:
            path.append(i)
            i = parent[i]
        root = i
        for j in reversed(path):
            if parent[j] != root:
                pot[j] += pot[parent[j]]
                parent[j] = root
        return root, (pot[path[0]] if path else 0.0)

    sources = [k for k, b in enumerate(branches) if b.is_source]
    shorts = [
        k for k, b in enumerate(branches)
        if not b.is_source and b.resistance(options) <= options.short_resistance
    ]

    rigid: set[int] = set()
    tree: list[int] = []
    conflicts: list[int] = []
    for k in sources + shorts:
        b = branches[k]
        drop = float(b.value) if b.is_source else 0.0
        rp, op = find(position[id(b.positive)])
        rn, on = find(position[id(b.negative)])
        if rp == rn:
            if abs((op - on) - drop) <= OFFSET_TOLERANCE * max(1.0, abs(drop)):
                rigid.add(k)
            elif b.is_source:
                rigid.add(k)
                conflicts.append(k)
            # a conflicting short stays resistive
            continue
        if rp < rn:
            parent[rn] = rp
            pot[rn] = op - on - drop
        else:
            parent[rp] = rn
            pot[rp] = drop + on - op
        rigid.add(k)
        tree.append(k)

    index: list[int] = []
    offset: list[float] = []
    roots: list[int] = []
    label: dict[int, int] = {}
    for i in range(len(nodes)):
        root, off = find(i)
        if root not in label:
            label[root] = len(roots)
            roots.append(root)
        index.append(label[root])
        offset.append(off)

    return SupernodeMap(index, offset, roots, rigid, tree, conflicts)


@jax.jit
def _relax(
    values: Array,
    free: Array,
    nbr: Array,
    cond: Array,
    shift: Array,
    threshold: Array,
    max_iterations: Array,
    relaxation: Array,
) -> tuple[Array, Array, Array]:
    """
    Gauss-Seidel sweeps until max |dV| < threshold or max_iterations.

    nbr/cond/shift are (n_super, width) padded neighbour tables; padding has
    zero conductance. Returns (values, iterations, last_max_change).
    """
    n = values.shape[0]
    denom = jnp.sum(cond, axis=1)
    safe_denom = jnp.where(denom > 0, denom, 1.0)
    active = free & (denom > 0)

    def update(i, v):
        target = jnp.sum(cond[i] * (v[nbr[i]] + shift[i])) / safe_denom[i]
        new = v[i] + relaxation * (target - v[i])
        return v.at[i].set(jnp.where(active[i], new, v[i]))

    def sweep(carry):
        v, it, _ = carry
        new_v = jax.lax.fori_loop(0, n, update, v)
        return new_v, it + 1, jnp.max(jnp.abs(new_v - v))

    def keep_going(carry):
        _, it, change = carry
        return (it < max_iterations) & (change >= threshold)

    init = (values, jnp.asarray(0, dtype=jnp.int32), jnp.asarray(jnp.inf, dtype=values.dtype))
    return jax.lax.while_loop(keep_going, sweep, init)


def _neighbour_tables(
    branches: Sequence[Branch],
    snodes: SupernodeMap,
    position: dict[int, int],
    options: SolverOptions,
    n_super: int,
) -> tuple[Array, Array, Array]:
    """Padded (n_super, width) tables of neighbour supernode, conductance and offset shift."""
    rows: list[list[tuple[int, float, float]]] = [[] for _ in range(n_super)]
    for k, b in enumerate(branches):
        if k in snodes.rigid:
            continue
        p, q = position[id(b.positive)], position[id(b.negative)]
        sp, sq = snodes.index[p], snodes.index[q]
        if sp == sq:
            continue  # internal to a supernode, no net current
        g = 1.0 / b.resistance(options)
        rows[sp].append((sq, g, snodes.offset[q] - snodes.offset[p]))
        rows[sq].append((sp, g, snodes.offset[p] - snodes.offset[q]))

    width = max(1, max((len(r) for r in rows), default=0))
    nbr = [[0] * width for _ in range(n_super)]
    cond = [[0.0] * width for _ in range(n_super)]
    shift = [[0.0] * width for _ in range(n_super)]
    for s, row in enumerate(rows):
        for j, (t, g, d) in enumerate(row):
            nbr[s][j], cond[s][j], shift[s][j] = t, g, d
    return (
        jnp.asarray(nbr, dtype=jnp.int32),
        jnp.asarray(cond, dtype=jnp.float64),
        jnp.asarray(shift, dtype=jnp.float64),
    )


def _tree_flows(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    snodes: SupernodeMap,
    position: dict[int, int],
    outflow: list[float],
) -> dict[int, float]:
    """
    Currents through spanning-tree rigid branches from KCL, leaves inward.

    outflow[i] is the current leaving node i through non-rigid branches.
    Returns {branch index: current from positive to negative terminal}.
    """
    adjacency: dict[int, list[int]] = {}
    for k in snodes.tree:
        b = branches[k]
        for terminal in (b.positive, b.negative):
            adjacency.setdefault(position[id(terminal)], []).append(k)

    outflow = list(outflow)
    flows: dict[int, float] = {}
    visited: set[int] = set()
    for root in snodes.roots:
        if root not in adjacency:
            continue
        order: list[tuple[int, int]] = []  # (node, branch to its parent)
        visited.add(root)
        queue = deque([root])
        while queue:
            i = queue.popleft()
            for k in adjacency.get(i, ()):
                b = branches[k]
                j = position[id(b.other(nodes[i]))]
                if j not in visited:
                    visited.add(j)
                    order.append((j, k))
                    queue.append(j)
        for j, k in reversed(order):
            b = branches[k]
            leaving = -outflow[j]
            flows[k] = leaving if position[id(b.positive)] == j else -leaving
            parent = position[id(b.other(nodes[j]))]
            outflow[parent] += outflow[j]
    return flows


def solve(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    options: SolverOptions | None = None,
    **overrides,
) -> SolveResult:
    """
    Solve node voltages and branch currents in place.

    Args:
        nodes: Every node of the graph (isolated nodes allowed)
        branches: Branches between those nodes
        options: SolverOptions (defaults if None)
        **overrides: Replace individual option fields,
                     e.g. max_iterations=50, convergence_threshold=1e-4

    Returns:
        SolveResult; branch.current, branch.voltage_drop and node.voltage
        are written on the given objects. Reaching max_iterations is not an
        error: the best estimate is written and converged is False.

    Raises:
        InvalidCircuitError: malformed graph or invalid nominal values
        ValueError: invalid options
    """
    options = resolve_options(options, **overrides)
    nodes = list(nodes)
    branches = list(branches)
    position = _check_graph(nodes, branches)

    circuits = connected_circuits(nodes, branches)
    grounds = _pick_grounds(nodes, branches, circuits)

    snodes = reduce_supernodes(nodes, branches, options, position)
    n_super = len(snodes.roots)
    for k in snodes.conflicts:
        logger.warning(
            "Source %s contradicts another source or short in its loop; it is "
            "left out of the solution and reports zero current", branches[k].id,
        )

    values = [0.0] * n_super
    fixed = [False] * n_super
    for ground in grounds.values():
        g = position[id(ground)]
        s = snodes.index[g]
        fixed[s] = True
        values[s] = -snodes.offset[g]

    iterations, change = 0, 0.0
    if n_super and not all(fixed):
        nbr, cond, shift = _neighbour_tables(branches, snodes, position, options, n_super)
        free = jnp.asarray([not f for f in fixed])
        out, it, last = _relax(
            jnp.asarray(values, dtype=jnp.float64),
            free,
            nbr,
            cond,
            shift,
            jnp.asarray(options.convergence_threshold, dtype=jnp.float64),
            jnp.asarray(int(options.max_iterations)),
            jnp.asarray(options.relaxation, dtype=jnp.float64),
        )
        values = out.tolist()
        iterations = int(it)
        change = float(last)
    converged = change < options.convergence_threshold

    voltages = [values[snodes.index[i]] + snodes.offset[i] for i in range(len(nodes))]
    for n, v in zip(nodes, voltages):
        n.voltage = v

    flows: dict[int, float] = {}
    outflow = [0.0] * len(nodes)
    for k, b in enumerate(branches):
        if k in snodes.rigid:
            continue
        p, q = position[id(b.positive)], position[id(b.negative)]
        flow = 0.0 if p == q else (voltages[p] - voltages[q]) / b.resistance(options)
        flows[k] = flow
        outflow[p] += flow
        outflow[q] -= flow
    flows.update(_tree_flows(nodes, branches, snodes, position, outflow))

    for k, b in enumerate(branches):
        flow = flows.get(k, 0.0)  # redundant and conflicting rigid branches carry none
        if b.is_source:
            b.current = -flow
            b.voltage_drop = float(b.value)
        else:
            b.current = flow
            b.voltage_drop = (
                voltages[position[id(b.positive)]] - voltages[position[id(b.negative)]]
            )

    if not converged:
        logger.warning(
            "Relaxation stopped after %d sweeps without converging "
            "(last change %.3g V, threshold %.3g V)",
            iterations, change, options.convergence_threshold,
        )
    logger.debug(
        "Solved %d nodes, %d branches, %d supernodes in %d sweeps",
        len(nodes), len(branches), n_super, iterations,
    )

    return SolveResult(
        converged=converged,
        iterations=iterations,
        max_change=change,
        voltages={n.id: n.voltage for n in nodes},
        circuits={n.id: circuits[id(n)] for n in nodes},
        grounds=tuple(grounds[c].id for c in sorted(grounds)),
        nodes={n.id: n for n in nodes},
        conflicts=tuple(branches[k].id for k in snodes.conflicts),
    )
