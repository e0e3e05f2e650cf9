"""
Test: Supernode reduction.

Sources and near-zero resistances pin node offsets; floating sources are
solved as one unknown together with their partner node.
"""
import pytest


def test_stacked_batteries():
    """Two 6V cells in series across 12 Ohm: 1 A through everything."""
    from pykirchhoff import Circuit, Battery, Resistor

    circuit = Circuit()
    circuit, _ = Battery(circuit, "mid", "gnd", name="B1", value=6.0)
    circuit, _ = Battery(circuit, "top", "mid", name="B2", value=6.0)
    circuit, _ = Resistor(circuit, "top", "gnd", name="R1", value=12.0)

    analysis = circuit.solve()

    assert analysis.node_at("gnd").voltage == 0.0
    assert abs(analysis.node_at("mid").voltage - 6.0) < 1e-9
    assert abs(analysis.node_at("top").voltage - 12.0) < 1e-9
    for name in ("B1", "B2", "R1"):
        current = analysis.branch(name).current
        assert abs(current - 1.0) < 1e-9, f"{name}: expected 1 A, got {current:.6f} A"


def test_floating_source_between_resistors():
    """A battery with neither terminal grounded is relaxed as a supernode."""
    from pykirchhoff import Circuit, Battery, Resistor

    circuit = Circuit()
    circuit, _ = Battery(circuit, "p", "g", name="B1", value=10.0)
    circuit, _ = Resistor(circuit, "p", "x", name="R1", value=10.0)
    circuit, _ = Battery(circuit, "y", "x", name="B2", value=5.0)
    circuit, _ = Resistor(circuit, "y", "g", name="R2", value=10.0)

    analysis = circuit.solve()

    # 15 V around the loop over 20 Ohm
    assert analysis.converged
    assert abs(analysis.branch("R1").current - 0.75) < 1e-3
    assert abs(analysis.branch("R2").current - 0.75) < 1e-3
    assert abs(analysis.branch("B2").current - 0.75) < 1e-3, (
        f"Floating source should deliver 0.75 A, got {analysis.branch('B2').current:.6f} A"
    )
    assert abs(analysis.node_at("x").voltage - 2.5) < 1e-3
    assert abs(analysis.node_at("y").voltage - 7.5) < 1e-3


def test_explicit_ground_off_the_source():
    """A flagged ground on a resistor tap leaves the battery floating."""
    from pykirchhoff import Node, Branch, solve

    a, b, c = Node("a"), Node("b", is_ground=True), Node("c")
    branches = [
        Branch("B1", "Battery", a, c, value=12.0),
        Branch("R1", "Resistor", a, b, value=10.0),
        Branch("R2", "Resistor", b, c, value=10.0),
    ]

    result = solve([a, b, c], branches)

    assert result.grounds == ("b",)
    assert b.voltage == 0.0
    assert abs(a.voltage - 6.0) < 1e-3, f"Expected +6 V, got {a.voltage:.6f} V"
    assert abs(c.voltage + 6.0) < 1e-3, f"Expected -6 V, got {c.voltage:.6f} V"
    assert abs(branches[0].current - 0.6) < 1e-3


def test_reduce_supernodes_offsets():
    from pykirchhoff import Node, Branch, SolverOptions, reduce_supernodes

    a, b, c, d = Node("a"), Node("b"), Node("c"), Node("d")
    branches = [
        Branch("B1", "Battery", a, b, value=9.0),
        Branch("W1", "Wire", b, c),
        Branch("R1", "Resistor", c, d, value=5.0),
    ]

    snodes = reduce_supernodes([a, b, c, d], branches, SolverOptions())

    assert snodes.index[0] == snodes.index[1] == snodes.index[2]
    assert snodes.index[3] != snodes.index[0]
    assert snodes.offset[0] == 0.0
    assert snodes.offset[1] == -9.0
    assert snodes.offset[2] == -9.0
    assert snodes.rigid == {0, 1}
    assert snodes.tree == [0, 1]
    assert snodes.conflicts == []


def test_redundant_rigid_branch_carries_no_current():
    """Two wires in parallel: one forms the tree, the other reads 0 A."""
    from pykirchhoff import Circuit, Battery, Resistor, Wire

    circuit = Circuit()
    circuit, _ = Battery(circuit, "top", "gnd", name="B1", value=6.0)
    circuit, _ = Resistor(circuit, "top", "a", name="R1", value=6.0)
    circuit, _ = Wire(circuit, "a", "gnd", name="W1")
    circuit, _ = Wire(circuit, "a", "gnd", name="W2")

    analysis = circuit.solve()

    w1, w2 = analysis.branch("W1"), analysis.branch("W2")
    assert abs(w1.current - 1.0) < 1e-9
    assert w2.current == 0.0
    assert abs(w1.current + w2.current - analysis.branch("R1").current) < 1e-9


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
