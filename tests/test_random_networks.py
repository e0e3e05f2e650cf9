"""
Test: Randomly wired resistor networks.

Whatever the wiring, a converged solve must satisfy KCL at every node and
hold every battery at its EMF.
"""
import random

import pytest


def _random_circuit(seed, n_nodes=8, extra_edges=6):
    from pykirchhoff import Circuit, Battery, Resistor

    rng = random.Random(seed)
    keys = [f"k{i}" for i in range(n_nodes)]
    circuit = Circuit()
    circuit, _ = Battery(circuit, keys[0], keys[1], name="B1", value=rng.uniform(1.0, 20.0))

    count = 0
    # spanning tree keeps the network in one piece
    for i in range(1, n_nodes):
        j = rng.randrange(i)
        circuit, _ = Resistor(circuit, keys[i], keys[j], name=f"R{count}", value=rng.uniform(1.0, 10.0))
        count += 1
    for _ in range(extra_edges):
        i, j = rng.sample(range(n_nodes), 2)
        circuit, _ = Resistor(circuit, keys[i], keys[j], name=f"R{count}", value=rng.uniform(1.0, 10.0))
        count += 1
    return circuit


@pytest.mark.parametrize("seed", [0, 1, 2, 3, 4, 5])
def test_random_network_satisfies_kcl(seed):
    from pykirchhoff import WarningKind

    circuit = _random_circuit(seed)
    analysis = circuit.solve()

    assert analysis.converged, f"seed {seed}: stopped after {analysis.result.iterations} sweeps"
    bad = [w for w in analysis.warnings
           if w.kind in (WarningKind.KCL_RESIDUAL, WarningKind.EMF_MISMATCH)]
    assert bad == [], f"seed {seed}: {bad}"


@pytest.mark.parametrize("seed", [30, 31])
def test_larger_random_network_with_default_options(seed):
    """Thirty nodes, default sweep budget."""
    from pykirchhoff import WarningKind

    analysis = _random_circuit(seed, n_nodes=30, extra_edges=20).solve()

    assert analysis.converged, f"seed {seed}: stopped after {analysis.result.iterations} sweeps"
    assert not [w for w in analysis.warnings if w.kind is WarningKind.KCL_RESIDUAL]


@pytest.mark.parametrize("seed", [10, 11, 12])
def test_random_network_with_over_relaxation(seed):
    """SOR lands on the same voltages as plain Gauss-Seidel."""
    circuit = _random_circuit(seed)

    plain = circuit.solve()
    sor = circuit.solve(relaxation=1.5)

    assert plain.converged and sor.converged
    for node_id, v in plain.result.voltages.items():
        w = sor.result.voltages[node_id]
        assert abs(v - w) < 1e-3, f"seed {seed}, {node_id}: {v:.6f} vs {w:.6f}"


@pytest.mark.parametrize("seed", [20, 21])
def test_battery_current_balances_resistor_power(seed):
    """Power delivered by the source equals power dissipated."""
    circuit = _random_circuit(seed)
    analysis = circuit.solve()

    delivered = analysis.branch("B1").power
    dissipated = sum(b.power for b in analysis.topology.branches if not b.is_source)
    assert abs(delivered - dissipated) < 1e-3 * max(1.0, abs(delivered)), (
        f"seed {seed}: delivered {delivered:.6f} W, dissipated {dissipated:.6f} W"
    )


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
