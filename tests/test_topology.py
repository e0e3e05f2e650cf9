"""
Test: Building nodes and branches from placed components.
"""
import pytest


def test_touching_endpoints_merge():
    from pykirchhoff import Circuit, Battery, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Battery(circuit, (0, 0), (0, 2), name="B1")
    circuit, _ = Resistor(circuit, (0.1, 0), (0, 2.2), name="R1")

    topology = build_topology(circuit, tolerance=0.5)

    assert len(topology.nodes) == 2
    b1, r1 = topology.branch("B1"), topology.branch("R1")
    assert b1.positive is r1.positive
    assert b1.negative is r1.negative
    assert topology.warnings == ()


def test_merging_is_transitive():
    """(0,0)-(0.4,0)-(0.8,0) chain into one node though the ends are 0.8 apart."""
    from pykirchhoff import Circuit, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, (0, 0), (10, 0), name="R1")
    circuit, _ = Resistor(circuit, (0.4, 0), (10, 0.1), name="R2")
    circuit, _ = Resistor(circuit, (0.8, 0), (20, 0), name="R3")

    topology = build_topology(circuit, tolerance=0.5)

    assert len(topology.nodes) == 3, f"Expected 3 nodes, got {topology.nodes}"
    left = topology.node_at((0, 0))
    assert topology.branch("R3").positive is left
    assert len(left.endpoints) == 3


def test_distant_endpoints_stay_apart():
    from pykirchhoff import Circuit, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, (0, 0), (1, 0), name="R1")
    circuit, _ = Resistor(circuit, (2, 0), (3, 0), name="R2")

    topology = build_topology(circuit, tolerance=0.5)

    assert len(topology.nodes) == 4
    assert topology.nodes[0].circuit != topology.nodes[2].circuit


def test_every_terminal_is_a_listed_node():
    from pykirchhoff import Circuit, Battery, Resistor, Switch, build_topology

    circuit = Circuit()
    circuit, _ = Battery(circuit, "A", "B", name="B1")
    circuit, _ = Resistor(circuit, "A", "C", name="R1")
    circuit, _ = Switch(circuit, "C", "B", name="S1")

    topology = build_topology(circuit)

    ids = {id(n) for n in topology.nodes}
    for b in topology.branches:
        assert id(b.positive) in ids and id(b.negative) in ids, f"{b.id} has a dangling terminal"
    assert [n.id for n in topology.nodes] == ["n0", "n1", "n2"]


def test_ground_is_first_battery_negative():
    from pykirchhoff import Circuit, Battery, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, "A", "B", name="R1")
    circuit, _ = Battery(circuit, "B", "A", name="B1")
    circuit, _ = Resistor(circuit, "X", "Y", name="R2")

    topology = build_topology(circuit)

    grounds = topology.grounds
    assert len(grounds) == 2, "One reference per connected subgraph"
    assert topology.node_at("A").is_ground
    assert topology.node_at("X").is_ground, "Without a battery the first node is the reference"


def test_unresolvable_endpoints_are_skipped():
    from pykirchhoff import Circuit, ComponentSpec, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, (0, 0), (1, 0), name="R1")
    circuit, _ = circuit.add_component(ComponentSpec("R2", "Resistor", ((0, 0), None), 10.0))
    circuit, _ = circuit.add_component(ComponentSpec("R3", "Resistor", ((0, 0), (float("nan"), 1)), 10.0))
    circuit, _ = circuit.add_component(ComponentSpec("R4", "Resistor", ((0, 0), (1, 2, 3)), 10.0))
    circuit, _ = circuit.add_component(ComponentSpec("R5", "Resistor", ((0, 0), [[1]]), 10.0))

    topology = build_topology(circuit)

    assert [b.id for b in topology.branches] == ["R1"]
    assert len(topology.warnings) == 4
    assert all(w.startswith(("R2", "R3", "R4", "R5")) for w in topology.warnings)


def test_bad_component_lists_are_skipped():
    from pykirchhoff import ComponentSpec, build_topology

    components = [
        ComponentSpec("R1", "Resistor", ("a", "b"), 10.0),
        ComponentSpec("R1", "Resistor", ("b", "c"), 10.0),
        ComponentSpec("X1", "Capacitor", ("a", "b"), 1.0),
        ComponentSpec("R2", "Resistor", ("a",), 10.0),
    ]

    topology = build_topology(components)

    assert [b.id for b in topology.branches] == ["R1"]
    assert len(topology.warnings) == 3
    assert len(topology.nodes) == 2


def test_junction_joins_distant_endpoints():
    from pykirchhoff import Circuit, Battery, Resistor, Junction, build_topology

    circuit = Circuit()
    circuit, _ = Battery(circuit, (0, 0), (0, 5), name="B1")
    circuit, _ = Resistor(circuit, (10, 0), (10, 5), name="R1")
    circuit, _ = Junction(circuit, (0, 0), (10, 0), name="J1")
    circuit, _ = Junction(circuit, (0, 5), (10, 5), name="J2")

    topology = build_topology(circuit)

    assert len(topology.nodes) == 2
    assert topology.branch("B1").positive is topology.branch("R1").positive


def test_lonely_junction_is_an_isolated_node():
    from pykirchhoff import Circuit, Resistor, Junction, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, "a", "b", name="R1")
    circuit, _ = Junction(circuit, "bus", name="J1")

    topology = build_topology(circuit)

    assert len(topology.nodes) == 3
    bus = topology.node_at("bus")
    assert bus.is_ground
    assert all(bus is not b.positive and bus is not b.negative for b in topology.branches)


def test_joins_argument():
    from pykirchhoff import Circuit, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, "a", "b", name="R1")
    circuit, _ = Resistor(circuit, "c", "d", name="R2")

    topology = build_topology(circuit, joins=[("b", "c"), (None, "d")])

    assert len(topology.nodes) == 3
    assert topology.branch("R1").negative is topology.branch("R2").positive
    assert len(topology.warnings) == 1


def test_self_loop_kept():
    from pykirchhoff import Circuit, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, (0, 0), (0.2, 0), name="R1")

    topology = build_topology(circuit)

    assert len(topology.nodes) == 1
    assert topology.branch("R1").is_self_loop


def test_node_at_lookup():
    from pykirchhoff import Circuit, Resistor, build_topology

    circuit = Circuit()
    circuit, _ = Resistor(circuit, (0, 0), (3, 0), name="R1")
    topology = build_topology(circuit)

    assert topology.node_at((0.2, 0.1)) is topology.branch("R1").positive
    assert topology.node_at([3, 0]) is topology.branch("R1").negative
    with pytest.raises(KeyError):
        topology.node_at((1.5, 0))
    with pytest.raises(KeyError):
        topology.node_at("nowhere")
    with pytest.raises(KeyError):
        topology.branch("R9")


def test_negative_tolerance_rejected():
    from pykirchhoff import build_topology

    with pytest.raises(ValueError):
        build_topology([], tolerance=-1.0)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
