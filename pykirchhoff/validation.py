"""
Read-only checks over a (usually solved) circuit graph.

Nothing here raises for a bad circuit or touches solver state: every problem
is returned as a ValidationWarning naming the offending node or branch.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import NamedTuple, Sequence

import networkx as nx

from .network import (
    Node,
    Branch,
    BRANCH_KINDS,
    RESISTIVE_KINDS,
    SWITCH_KINDS,
    connected_circuits,
)
from .options import SolverOptions, resolve_options

logger = logging.getLogger(__name__)


class WarningKind(Enum):
    """Categories of validation findings."""

    KCL_RESIDUAL = "kcl_residual"
    EMF_MISMATCH = "emf_mismatch"
    BAD_RESISTANCE = "bad_resistance"
    UNSOLVED = "unsolved"
    NO_SOURCE = "no_source"
    SHORT_CIRCUIT = "short_circuit"
    FLOATING = "floating"
    SELF_LOOP = "self_loop"
    UNKNOWN_KIND = "unknown_kind"


class ValidationWarning(NamedTuple):
    kind: WarningKind
    subject_id: str
    detail: str


def _flow(branch: Branch) -> float:
    """Current from positive to negative terminal through the element."""
    return -branch.current if branch.is_source else branch.current


def _number(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _resistance_ok(branch: Branch) -> bool:
    value = _number(branch.value)
    return value is not None and math.isfinite(value) and value > 0


def _is_near_short(branch: Branch, options: SolverOptions) -> bool:
    if branch.kind in SWITCH_KINDS:
        return branch.resistance(options) <= options.short_resistance
    if branch.kind in RESISTIVE_KINDS and _resistance_ok(branch):
        return float(branch.value) <= options.short_resistance
    return False


def _check_kinds_and_values(branches: Sequence[Branch]) -> list[ValidationWarning]:
    found = []
    for b in branches:
        if b.kind not in BRANCH_KINDS:
            found.append(ValidationWarning(
                WarningKind.UNKNOWN_KIND, b.id, f"unknown component kind {b.kind!r}",
            ))
        elif b.kind in RESISTIVE_KINDS and not _resistance_ok(b):
            found.append(ValidationWarning(
                WarningKind.BAD_RESISTANCE, b.id,
                f"resistance {b.value!r} is not finite and positive",
            ))
    return found


def _check_kcl(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    tolerance: float,
) -> list[ValidationWarning]:
    incident: dict[int, list[Branch]] = {id(n): [] for n in nodes}
    for b in branches:
        for terminal in (b.positive, b.negative):
            if id(terminal) in incident:
                incident[id(terminal)].append(b)

    found = []
    for n in nodes:
        touching = incident[id(n)]
        if not touching or not all(b.is_solved for b in touching):
            continue
        residual = 0.0
        scale = 1.0
        for b in touching:
            flow = _flow(b)
            if b.is_self_loop:
                continue
            residual += flow if b.positive is n else -flow
            scale = max(scale, abs(flow))
        if not abs(residual) <= tolerance * scale:
            found.append(ValidationWarning(
                WarningKind.KCL_RESIDUAL, n.id,
                f"currents leaving the node sum to {residual:.6g} A",
            ))
    return found


def _check_sources(branches: Sequence[Branch], tolerance: float) -> list[ValidationWarning]:
    found = []
    for b in branches:
        if not b.is_source or not b.is_solved:
            continue
        emf = _number(b.value)
        if emf is None or not math.isfinite(emf):
            found.append(ValidationWarning(
                WarningKind.EMF_MISMATCH, b.id, f"EMF {b.value!r} is not a finite number",
            ))
            continue
        measured = b.positive.voltage - b.negative.voltage
        if not abs(measured - emf) <= tolerance * max(1.0, abs(emf)):
            found.append(ValidationWarning(
                WarningKind.EMF_MISMATCH, b.id,
                f"terminal difference {measured:.6g} V, nominal EMF {emf:.6g} V",
            ))
    return found


def _check_structure(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    options: SolverOptions,
) -> list[ValidationWarning]:
    found = []
    degree: dict[int, int] = {}
    for b in branches:
        degree[id(b.positive)] = degree.get(id(b.positive), 0) + 1
        degree[id(b.negative)] = degree.get(id(b.negative), 0) + 1

    for b in branches:
        if not b.is_solved:
            found.append(ValidationWarning(WarningKind.UNSOLVED, b.id, "no solved current or drop"))
        if b.is_self_loop:
            found.append(ValidationWarning(
                WarningKind.SELF_LOOP, b.id,
                f"both terminals on node {b.positive.id}; carries no current",
            ))
        elif degree[id(b.positive)] == 1 and degree[id(b.negative)] == 1:
            found.append(ValidationWarning(
                WarningKind.FLOATING, b.id, "not connected to any other component",
            ))

    # sources, grouped per connected subgraph
    known = list(nodes) + [t for b in branches for t in (b.positive, b.negative)]
    unique = list({id(n): n for n in known}.values())
    circuits = connected_circuits(unique, branches)
    members: dict[int, list[Branch]] = {}
    for b in branches:
        members.setdefault(circuits[id(b.positive)], []).append(b)
    for c, group in members.items():
        if not any(b.is_source for b in group):
            found.append(ValidationWarning(
                WarningKind.NO_SOURCE, group[0].positive.id,
                "circuit has no battery: " + ", ".join(b.id for b in group),
            ))

    # near-zero resistance paths across a source
    shorts = nx.Graph()
    shorts.add_nodes_from(unique)
    shorts.add_edges_from(
        (b.positive, b.negative) for b in branches
        if _is_near_short(b, options)
    )
    for b in branches:
        if b.is_source and nx.has_path(shorts, b.positive, b.negative):
            found.append(ValidationWarning(
                WarningKind.SHORT_CIRCUIT, b.id,
                "terminals joined by a path of near-zero resistance",
            ))
    return found


def validate(
    nodes: Sequence[Node],
    branches: Sequence[Branch],
    options: SolverOptions | None = None,
    *,
    tolerance: float | None = None,
) -> list[ValidationWarning]:
    """
    Check a graph for KCL violations, EMF mismatches and invalid values.

    Args:
        nodes: Graph nodes
        branches: Graph branches (solved results are read, never written)
        options: SolverOptions for switch resistances and default tolerance
        tolerance: KCL residual per unit of the largest incident current
                   (amps for currents below 1 A) and EMF error per volt

    Returns:
        List of ValidationWarning(kind, subject_id, detail); empty if clean.
    """
    options = resolve_options(options)
    if tolerance is None:
        tolerance = options.validation_tolerance
    nodes = list(nodes)
    branches = list(branches)

    found = _check_kinds_and_values(branches)
    found += _check_kcl(nodes, branches, tolerance)
    found += _check_sources(branches, tolerance)
    found += _check_structure(nodes, branches, options)
    if found:
        logger.debug("Validation produced %d warning(s)", len(found))
    return found
