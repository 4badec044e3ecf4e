"""Cross-control rules for a parsed document.

:func:`parse_and_validate` is the single entry point used by the hub's
reload path: it either returns a complete :class:`patchbay.config.ConfigSet`
or raises :class:`patchbay.errors.ValidationError` naming the offending
control and rule.  Cycles are reported separately by
:mod:`patchbay.dependency_graph`.
"""

import math
import typing

import patchbay.config
import patchbay.errors
import patchbay.parser


def _error (control: str, message: str, rule: str) -> patchbay.errors.ValidationError:
	return patchbay.errors.ValidationError(message, control=control, rule=rule)


def _check_readable (config: patchbay.config.ConfigSet, owner: str, target: str, where: str) -> None:

	"""*target* must exist and be something with a value."""

	control = config.get(target)

	if control is None:
		raise _error(owner, f"Unresolved reference {target!r} in {where}", "unresolved_reference")

	if not control.readable:
		raise _error(
			owner,
			f"{where} refers to {target!r}, a {control.kind} control, which has no readable value",
			"invalid_reference_target"
		)


def _check_references (config: patchbay.config.ConfigSet) -> None:

	for control in config:

		for keypath, ref in patchbay.config.param_refs(control):
			_check_readable(config, control.name, ref.name, f"`{keypath}` (${ref.name})")

		disabled = getattr(control, "disabled", None)
		if disabled is not None:
			for name in disabled.names():
				if name not in config:
					raise _error(control.name, f"Unresolved reference {name!r} in `disabled`", "unresolved_reference")

		if isinstance(control, patchbay.config.RingModulator):
			_check_readable(config, control.name, control.modulator, "`modulator`")


def _check_routes (config: patchbay.config.ConfigSet) -> None:

	for route in config.of_category(patchbay.config.ROUTE):

		assert isinstance(route, patchbay.config.Mod)

		_check_readable(config, route.name, route.source, "`source`")

		for name in route.modulators:

			modulator = config.get(name)

			if modulator is None:
				raise _error(route.name, f"Unresolved reference {name!r} in `modulators`", "unresolved_reference")

			# Decision path: non-effect modulators are allowed and multiply the value.
			if modulator.category != patchbay.config.EFFECT and not modulator.readable:
				raise _error(
					route.name,
					f"`modulators` entry {name!r} is a {modulator.kind} control; expected an effect or a readable control",
					"invalid_modulator"
				)


def _check_breakpoints (control: patchbay.config.Automate) -> None:

	breakpoints = control.breakpoints
	last = len(breakpoints) - 1

	ends = [i for i, bp in enumerate(breakpoints) if bp.kind == "end"]

	if ends != [last]:
		raise _error(control.name, "breakpoints must finish with exactly one `end` breakpoint", "breakpoints")

	first = breakpoints[0].position
	if isinstance(first, float) and first != 0.0:
		raise _error(control.name, f"first breakpoint position must be 0.0, got {first}", "breakpoints")

	previous: typing.Optional[float] = None

	for index, bp in enumerate(breakpoints):

		if not isinstance(bp.position, float):
			# A referenced position can only be checked once it has a value.
			previous = None
			continue

		if previous is not None:
			if bp.position < previous or (bp.position == previous and index != last):
				raise _error(
					control.name,
					f"breakpoint {index} position {bp.position} does not increase from {previous}",
					"breakpoints"
				)

		previous = bp.position


def _check_sequence (control: patchbay.config.SnapshotSequence) -> None:

	stages = control.stages

	if len(stages) < 2:
		raise _error(control.name, "needs at least one stage and a closing `end`", "snapshot_sequence")

	if stages[0].position != 0.0:
		raise _error(control.name, "first stage position must be 0.0", "snapshot_sequence")

	for index, stage in enumerate(stages):

		if not math.isfinite(stage.position) or stage.position < 0.0:
			raise _error(control.name, f"stage {index} position must be finite and >= 0", "snapshot_sequence")

		if index and stage.position <= stages[index - 1].position:
			raise _error(control.name, f"stage {index} position must be greater than the previous stage", "snapshot_sequence")

		expected = "end" if index == len(stages) - 1 else "stage"
		if stage.kind != expected:
			raise _error(control.name, f"stage {index} must be kind `{expected}`", "snapshot_sequence")


def _check_aliases (config: patchbay.config.ConfigSet) -> None:

	seen: typing.Dict[str, str] = {}

	for control in config:

		if not control.var:
			continue

		if control.var in config and control.var != control.name:
			raise _error(control.name, f"var {control.var!r} shadows another control", "duplicate_var")

		if control.var in seen:
			raise _error(control.name, f"var {control.var!r} is already used by {seen[control.var]!r}", "duplicate_var")

		seen[control.var] = control.name


def validate (config: patchbay.config.ConfigSet) -> patchbay.config.ConfigSet:

	"""
	Check every cross-control rule; return *config* unchanged when it passes.
	"""

	_check_references(config)
	_check_routes(config)
	_check_aliases(config)

	sequences = [c for c in config if isinstance(c, patchbay.config.SnapshotSequence)]

	if len(sequences) > 1:
		raise _error(sequences[1].name, "only one snapshot_sequence is allowed per document", "snapshot_sequence")

	for control in config:

		if isinstance(control, patchbay.config.Automate):
			_check_breakpoints(control)

		elif isinstance(control, patchbay.config.SnapshotSequence):
			_check_sequence(control)

	return config


def parse_and_validate (document: str) -> patchbay.config.ConfigSet:

	"""
	Parse YAML text and check it; raises :class:`patchbay.errors.ValidationError`.
	"""

	return validate(patchbay.parser.parse(document))
