import typing

import patchbay.config
import patchbay.errors


_WHITE, _GREY, _BLACK = 0, 1, 2


class DependencyGraph:

	"""
	Directed graph of which controls read which, in evaluation order.

	An edge ``A -> B`` means A needs B's value first.  Edges come from
	``$name`` parameters, a ring modulator's ``modulator``, and each route's
	``source`` and ``modulators``.  A routed source also depends on its
	route's modulators because its readable value is the output of the
	chain, so a modulator that reads ``$source`` is a cycle.
	"""

	def __init__ (self, edges: typing.Dict[str, typing.List[str]], order: typing.List[str]) -> None:

		self._edges = edges
		self._order = order
		self._position = {name: index for index, name in enumerate(order)}
		self._plans: typing.Dict[str, typing.List[str]] = {}


	@classmethod
	def build (cls, config: patchbay.config.ConfigSet) -> "DependencyGraph":

		"""
		Build the graph for *config*.

		Raises :class:`patchbay.errors.CycleError` carrying the cycle's path.
		The order is a depth-first post-order over declaration order, so
		identical documents always evaluate in the same sequence.
		"""

		declared = config.names()
		edges: typing.Dict[str, typing.List[str]] = {}

		for control in config:
			edges[control.name] = [name for name in patchbay.config.dependencies_of(control) if name in config]

		for control in config:
			if isinstance(control, patchbay.config.Mod) and control.source in edges:
				source_edges = edges[control.source]
				for modulator in control.modulators:
					if modulator in config and modulator not in source_edges:
						source_edges.append(modulator)

		colour = {name: _WHITE for name in declared}
		order: typing.List[str] = []

		# Iterative; reference chains may be deeper than the recursion limit.
		for root in declared:

			if colour[root] != _WHITE:
				continue

			colour[root] = _GREY
			path = [root]
			pending = [iter(edges[root])]

			while pending:

				for dependency in pending[-1]:

					if colour[dependency] == _GREY:
						start = path.index(dependency)
						raise patchbay.errors.CycleError(path[start:] + [dependency])

					if colour[dependency] == _WHITE:
						colour[dependency] = _GREY
						path.append(dependency)
						pending.append(iter(edges[dependency]))
						break

				else:
					name = path.pop()
					pending.pop()
					colour[name] = _BLACK
					order.append(name)

		return cls(edges, order)


	@property
	def order (self) -> typing.List[str]:
		return list(self._order)

	def dependencies (self, name: str) -> typing.List[str]:
		return list(self._edges.get(name, []))

	def edges (self) -> typing.Iterator[typing.Tuple[str, str]]:

		for name, dependencies in self._edges.items():
			for dependency in dependencies:
				yield name, dependency

	def plan (self, name: str) -> typing.List[str]:

		"""
		Everything *name* transitively needs, then *name*, in evaluation order.

		Unknown names give an empty plan.  Results are memoised.
		"""

		if name in self._plans:
			return self._plans[name]

		if name not in self._edges:
			return []

		needed: typing.Set[str] = set()
		stack = [name]

		while stack:
			current = stack.pop()
			if current in needed:
				continue
			needed.add(current)
			stack.extend(self._edges[current])

		plan = sorted(needed, key=self._position.__getitem__)
		self._plans[name] = plan
		return plan
