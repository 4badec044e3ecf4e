import pytest

import patchbay.dependency_graph
import patchbay.errors
import patchbay.hub
import patchbay.parser

import conftest


def _graph (text: str) -> patchbay.dependency_graph.DependencyGraph:

	return patchbay.dependency_graph.DependencyGraph.build(patchbay.parser.parse(conftest.doc(text)))


def test_order_respects_every_edge () -> None:

	"""Every control comes after everything it reads."""

	graph = _graph("""
		wobble: { type: triangle, beats: $speed }
		speed: { type: slider, range: [1, 8], default: 2 }
		ring: { type: effect, kind: ring_modulator, modulator: lfo }
		lfo: { type: ramp, beats: $speed }
		route: { type: mod, source: wobble, modulators: [ring] }
	""")

	order = graph.order

	assert sorted(order) == sorted(["wobble", "speed", "ring", "lfo", "route"])

	for name, dependency in graph.edges():
		assert order.index(dependency) < order.index(name)


def test_order_is_deterministic () -> None:

	"""Independent controls keep declaration order."""

	graph = _graph("""
		c: { type: slider }
		a: { type: slider }
		b: { type: slider }
	""")

	assert graph.order == ["c", "a", "b"]


def test_routed_source_depends_on_its_modulators () -> None:

	"""A routed control needs its route's modulators first."""

	graph = _graph("""
		x: { type: slider }
		sat: { type: effect, kind: saturator }
		route: { type: mod, source: x, modulators: [sat] }
	""")

	assert "sat" in graph.dependencies("x")
	assert graph.dependencies("route") == ["x", "sat"]


def test_cycle_reports_path () -> None:

	"""A cycle names every control along it, closing on the first."""

	with pytest.raises(patchbay.errors.CycleError) as info:
		_graph("""
			a: { type: ramp, beats: $b }
			b: { type: ramp, beats: $c }
			c: { type: ramp, beats: $a }
		""")

	path = info.value.path

	assert path[0] == path[-1]
	assert set(path) == {"a", "b", "c"}
	assert len(path) == 4
	assert info.value.rule == "cycle"


def test_self_reference_is_a_cycle () -> None:

	"""A control reading itself is the shortest cycle."""

	with pytest.raises(patchbay.errors.CycleError) as info:
		_graph("""
			a: { type: ramp, beats: $a }
		""")

	assert info.value.path == ["a", "a"]


def test_modulator_reading_its_source_is_a_cycle () -> None:

	"""An effect parameter that reads the routed source loops back on it."""

	with pytest.raises(patchbay.errors.CycleError):
		_graph("""
			x: { type: slider }
			sat: { type: effect, kind: saturator, drive: $x }
			route: { type: mod, source: x, modulators: [sat] }
		""")


def test_plan_lists_transitive_dependencies_in_order () -> None:

	"""plan() is the evaluation order restricted to what a control needs."""

	graph = _graph("""
		unused: { type: slider }
		speed: { type: slider }
		depth: { type: ramp, beats: $speed }
		wobble: { type: triangle, beats: $depth }
	""")

	assert graph.plan("wobble") == ["speed", "depth", "wobble"]
	assert graph.plan("speed") == ["speed"]
	assert graph.plan("ghost") == []


def _chain (depth: int, closed: bool = False) -> str:

	"""A reference chain declared dependents first: c<n> reads c<n - 1>."""

	lines = [f"c{i}: {{ type: ramp, range: [1, 2], beats: $c{i - 1} }}" for i in range(depth - 1, 0, -1)]
	lines.append("c0: { type: ramp, range: [1, 2], beats: $c" + str(depth - 1) + " }" if closed else "c0: { type: ramp, range: [1, 2] }")

	return "\n".join(lines) + "\n"


def test_deep_chain_orders_without_recursion_limit () -> None:

	"""A chain far deeper than the interpreter's recursion limit still orders, evaluates and reports cycles."""

	graph = patchbay.dependency_graph.DependencyGraph.build(patchbay.parser.parse(_chain(1500)))

	assert graph.order[0] == "c0"
	assert graph.order[-1] == "c1499"
	assert len(graph.plan("c1499")) == 1500

	hub = patchbay.hub.Hub(_chain(1500))
	hub.tick(0.5)

	assert 1.0 <= hub.get("c1499") <= 2.0

	with pytest.raises(patchbay.errors.CycleError) as info:
		patchbay.dependency_graph.DependencyGraph.build(patchbay.parser.parse(_chain(1500, closed=True)))

	assert len(info.value.path) == 1501
	assert info.value.path[0] == info.value.path[-1]
