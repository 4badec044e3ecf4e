"""YAML control documents to :class:`patchbay.config.ConfigSet`.

A document is a mapping of control name to a mapping with a ``type``
field.  Entries without ``type`` are ignored so they can serve as YAML
anchors for ``<<:`` merge keys:

    base: &base { range: [0, 10] }

    radius:
      <<: *base
      type: slider
      default: 2

    wobble:
      type: triangle
      beats: $speed
      range: [0, 1]

This module only checks that each entry is well formed.  Cross-control
rules (references, routes, sequence counts) live in
:mod:`patchbay.validation`.
"""

import logging
import math
import typing

import yaml

import patchbay.config
import patchbay.easing
import patchbay.errors
import patchbay.expression


logger = logging.getLogger(__name__)

Entry = typing.Dict[str, typing.Any]


def _fail (name: str, message: str, rule: str = "invalid_field") -> patchbay.errors.ValidationError:
	return patchbay.errors.ValidationError(message, control=name, rule=rule)


# ─── Field readers ────────────────────────────────────────────────────────────


def _number (name: str, entry: Entry, key: str, default: float) -> float:

	raw = entry.get(key, default)

	if isinstance(raw, bool) or not isinstance(raw, (int, float)):
		raise _fail(name, f"`{key}` must be a number, got {raw!r}")

	if not math.isfinite(raw):
		raise _fail(name, f"`{key}` must be finite")

	return float(raw)


def _integer (name: str, entry: Entry, key: str, default: int) -> int:

	raw = entry.get(key, default)

	if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
		raise _fail(name, f"`{key}` must be a non-negative integer, got {raw!r}")

	return raw


def _param (name: str, entry: Entry, key: str, default: float) -> patchbay.config.Param:

	raw = entry.get(key, default)
	param = patchbay.expression.parse_param(raw)

	if param is None:
		raise _fail(name, f"`{key}` must be a number or a $reference, got {raw!r}", rule="invalid_param")

	if isinstance(param, float) and not math.isfinite(param):
		raise _fail(name, f"`{key}` must be finite")

	return param


def _pair (name: str, entry: Entry, key: str, default: typing.Optional[patchbay.config.Range]) -> patchbay.config.Range:

	if key not in entry:
		if default is None:
			raise _fail(name, f"`{key}` is required", rule="missing_field")
		return default

	raw = entry[key]

	if (
		not isinstance(raw, (list, tuple))
		or len(raw) != 2
		or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in raw)
	):
		raise _fail(name, f"`{key}` must be a pair of numbers, got {raw!r}")

	return (float(raw[0]), float(raw[1]))


def _choice (name: str, entry: Entry, key: str, default: str, choices: typing.Iterable[str]) -> str:

	raw = entry.get(key, default)
	choices = tuple(choices)

	if raw not in choices:
		raise _fail(name, f"`{key}` must be one of {', '.join(choices)}, got {raw!r}", rule="unknown_choice")

	return typing.cast(str, raw)


def _easing (name: str, entry: Entry, key: str = "easing") -> str:

	return _choice(name, entry, key, "linear", patchbay.easing.EASING_FUNCTIONS)


def _stem (name: str, entry: Entry) -> typing.Optional[int]:

	raw = entry.get("stem")

	if raw is None:
		return None

	if isinstance(raw, bool) or not isinstance(raw, int):
		raise _fail(name, f"`stem` must be an integer, got {raw!r}")

	return raw


def _disabled (name: str, entry: Entry) -> typing.Optional[patchbay.expression.Expression]:

	raw = entry.get("disabled")

	if raw is None:
		return None

	if not isinstance(raw, (str, bool)):
		raise _fail(name, f"`disabled` must be an expression or a boolean, got {raw!r}", rule="disabled_expression")

	return patchbay.expression.parse(raw, control=name)


def _shared (name: str, entry: Entry) -> Entry:

	"""``name``, ``var`` and ``bypass``; a non-numeric bypass means not bypassed."""

	bypass = entry.get("bypass")
	var = entry.get("var")

	if var is not None and not isinstance(var, str):
		raise _fail(name, f"`var` must be a string, got {var!r}")

	return {
		"name": name,
		"var": var,
		"bypass": float(bypass) if isinstance(bypass, (int, float)) and not isinstance(bypass, bool) else None,
	}


def snapshot_id (raw: typing.Any) -> str:

	"""Normalise a snapshot id: whole floats lose their fraction (``1.0`` -> ``"1"``)."""

	if isinstance(raw, bool):
		raise ValueError(f"snapshot id must be a string or number, got {raw!r}")

	if isinstance(raw, float):
		if not math.isfinite(raw):
			raise ValueError("snapshot id must be finite")
		if raw.is_integer():
			return str(int(raw))
		return repr(raw)

	if isinstance(raw, (int, str)):
		return str(raw)

	raise ValueError(f"snapshot id must be a string or number, got {raw!r}")


# ─── Builders, one per type ───────────────────────────────────────────────────


def _slider (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Slider(
		**_shared(name, entry),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		default=_number(name, entry, "default", 0.0),
		step=_number(name, entry, "step", 0.0001),
		disabled=_disabled(name, entry),
	)


def _checkbox (name: str, entry: Entry) -> patchbay.config.Control:

	default = entry.get("default", False)

	if not isinstance(default, bool):
		raise _fail(name, f"`default` must be a boolean, got {default!r}")

	return patchbay.config.Checkbox(**_shared(name, entry), default=default, disabled=_disabled(name, entry))


def _select (name: str, entry: Entry) -> patchbay.config.Control:

	options = entry.get("options")

	if not isinstance(options, list) or not options:
		raise _fail(name, "`options` must be a non-empty list", rule="missing_field")

	options = tuple(str(option) for option in options)
	default = str(entry.get("default", options[0]))

	if default not in options:
		raise _fail(name, f"`default` {default!r} is not one of the options", rule="unknown_choice")

	return patchbay.config.Select(**_shared(name, entry), options=options, default=default, disabled=_disabled(name, entry))


def _separator (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Separator(name=name)


def _midi (name: str, entry: Entry) -> patchbay.config.Control:

	channel = _integer(name, entry, "channel", 0)
	cc = _integer(name, entry, "cc", 0)

	if channel > 15 or cc > 127:
		raise _fail(name, f"MIDI channel {channel} / cc {cc} out of range")

	return patchbay.config.Midi(
		**_shared(name, entry),
		channel=channel,
		cc=cc,
		range=_pair(name, entry, "range", (0.0, 1.0)),
		default=_number(name, entry, "default", 0.0),
	)


def _osc (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Osc(
		**_shared(name, entry),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		default=_number(name, entry, "default", 0.0),
	)


def _audio (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Audio(
		**_shared(name, entry),
		channel=_integer(name, entry, "channel", 0),
		slew=_pair(name, entry, "slew", (0.0, 0.0)),
		pre=_number(name, entry, "pre", 0.0),
		detect=_number(name, entry, "detect", 0.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		default=_number(name, entry, "default", 0.0),
	)


def _ramp (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Ramp(
		**_shared(name, entry),
		beats=_param(name, entry, "beats", 1.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		phase=_param(name, entry, "phase", 0.0),
	)


def _triangle (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Triangle(
		**_shared(name, entry),
		beats=_param(name, entry, "beats", 1.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		phase=_param(name, entry, "phase", 0.0),
	)


def _random (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.Random(
		**_shared(name, entry),
		beats=_param(name, entry, "beats", 1.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		delay=_param(name, entry, "delay", 0.0),
		bias=_param(name, entry, "bias", 0.0),
		stem=_stem(name, entry),
	)


def _random_slewed (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.RandomSlewed(
		**_shared(name, entry),
		beats=_param(name, entry, "beats", 1.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
		slew=_param(name, entry, "slew", 0.65),
		delay=_param(name, entry, "delay", 0.0),
		bias=_param(name, entry, "bias", 0.0),
		stem=_stem(name, entry),
	)


def _round_robin (name: str, entry: Entry) -> patchbay.config.Control:

	values = entry.get("values", [])

	if not isinstance(values, list) or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in values):
		raise _fail(name, "`values` must be a list of numbers")

	return patchbay.config.RoundRobin(
		**_shared(name, entry),
		values=tuple(float(v) for v in values),
		beats=_param(name, entry, "beats", 1.0),
		slew=_param(name, entry, "slew", 0.0),
		stem=_stem(name, entry),
	)


def _breakpoint (name: str, index: int, raw: typing.Any) -> patchbay.config.Breakpoint:

	label = f"{name}.breakpoints.{index}"

	if not isinstance(raw, dict):
		raise _fail(name, f"breakpoint {index} must be a mapping", rule="breakpoints")

	kind = _choice(label, raw, "kind", "", patchbay.config.BREAKPOINT_KINDS)

	for key in ("position", "value"):
		if key not in raw:
			raise _fail(name, f"breakpoint {index} is missing `{key}`", rule="breakpoints")

	fields: typing.Dict[str, typing.Any] = {
		"kind": kind,
		"position": _param(name, raw, "position", 0.0),
		"value": _param(name, raw, "value", 0.0),
	}

	if kind in ("ramp", "wave", "random_smooth"):
		fields["easing"] = _easing(name, raw)

	if kind in ("wave", "random", "random_smooth"):
		fields["amplitude"] = _param(name, raw, "amplitude", 0.25)

	if kind in ("wave", "random_smooth"):
		fields["frequency"] = _param(name, raw, "frequency", 0.25)
		fields["constrain"] = _choice(name, raw, "constrain", "none", patchbay.config.CONSTRAIN_MODES)

	if kind == "wave":
		fields["shape"] = _choice(name, raw, "shape", "sine", patchbay.config.WAVE_SHAPES)
		fields["width"] = _param(name, raw, "width", 0.5)

	return patchbay.config.Breakpoint(**fields)


def _automate (name: str, entry: Entry) -> patchbay.config.Control:

	raw = entry.get("breakpoints")

	if not isinstance(raw, list) or not raw:
		raise _fail(name, "`breakpoints` must be a non-empty list", rule="breakpoints")

	return patchbay.config.Automate(
		**_shared(name, entry),
		breakpoints=tuple(_breakpoint(name, i, bp) for i, bp in enumerate(raw)),
		mode=_choice(name, entry, "mode", "loop", patchbay.config.AUTOMATE_MODES),
	)


def _stages (name: str, entry: Entry) -> typing.Tuple[patchbay.config.Stage, ...]:

	has_stages = "stages" in entry
	has_beats = "beats" in entry
	has_snapshots = "snapshots" in entry

	if has_stages and (has_beats or has_snapshots):
		raise _fail(name, "cannot define both `stages` and `beats`/`snapshots` shorthand", rule="snapshot_sequence")

	if has_beats != has_snapshots:
		raise _fail(name, "shorthand requires both `beats` and `snapshots`", rule="snapshot_sequence")

	if has_beats:

		beats = entry["beats"]
		snapshots = entry["snapshots"]

		if isinstance(beats, bool) or not isinstance(beats, (int, float)) or not math.isfinite(beats) or beats <= 0:
			raise _fail(name, "`beats` must be finite and > 0", rule="snapshot_sequence")

		if not isinstance(snapshots, list) or not snapshots:
			raise _fail(name, "`snapshots` must be a non-empty list", rule="snapshot_sequence")

		stages = []
		for index, raw in enumerate(snapshots):
			try:
				stages.append(patchbay.config.Stage("stage", index * float(beats), snapshot_id(raw)))
			except ValueError as e:
				raise _fail(name, str(e), rule="snapshot_sequence") from e

		stages.append(patchbay.config.Stage("end", len(snapshots) * float(beats)))
		return tuple(stages)

	raw_stages = entry.get("stages", [])

	if not isinstance(raw_stages, list):
		raise _fail(name, "`stages` must be a list", rule="snapshot_sequence")

	stages = []
	for index, raw in enumerate(raw_stages):

		if not isinstance(raw, dict):
			raise _fail(name, f"stage {index} must be a mapping", rule="snapshot_sequence")

		kind = _choice(f"{name}.stages.{index}", raw, "kind", "", ("stage", "end"))
		position = _number(name, raw, "position", -1.0)
		snapshot = None

		if kind == "stage":
			if "snapshot" not in raw:
				raise _fail(name, f"stage {index} is missing `snapshot`", rule="snapshot_sequence")
			try:
				snapshot = snapshot_id(raw["snapshot"])
			except ValueError as e:
				raise _fail(name, str(e), rule="snapshot_sequence") from e

		stages.append(patchbay.config.Stage(kind, position, snapshot))

	return tuple(stages)


def _snapshot_sequence (name: str, entry: Entry) -> patchbay.config.Control:
	return patchbay.config.SnapshotSequence(
		**_shared(name, entry),
		stages=_stages(name, entry),
		disabled=_disabled(name, entry),
	)


def _mod (name: str, entry: Entry) -> patchbay.config.Control:

	source = entry.get("source")
	modulators = entry.get("modulators", [])

	if not isinstance(source, str) or not source:
		raise _fail(name, "`source` must name a control", rule="missing_field")

	if not isinstance(modulators, list) or not modulators or not all(isinstance(m, str) for m in modulators):
		raise _fail(name, "`modulators` must be a non-empty list of control names", rule="missing_field")

	return patchbay.config.Mod(**_shared(name, entry), source=source, modulators=tuple(modulators))


def _effect (name: str, entry: Entry) -> patchbay.config.Control:

	kind = _choice(name, entry, "kind", "", patchbay.config.EFFECT_TYPES)
	shared = _shared(name, entry)

	if kind == "constrain":
		return patchbay.config.Constrain(
			**shared,
			mode=_choice(name, entry, "mode", "clamp", patchbay.config.CONSTRAIN_MODES),
			range=_pair(name, entry, "range", (0.0, 1.0)),
		)

	if kind == "hysteresis":

		pass_through = entry.get("pass_through", False)
		if not isinstance(pass_through, bool):
			raise _fail(name, f"`pass_through` must be a boolean, got {pass_through!r}")

		return patchbay.config.Hysteresis(
			**shared,
			lower_threshold=_param(name, entry, "lower_threshold", 0.3),
			upper_threshold=_param(name, entry, "upper_threshold", 0.7),
			output_low=_param(name, entry, "output_low", 0.0),
			output_high=_param(name, entry, "output_high", 1.0),
			pass_through=pass_through,
		)

	if kind == "map":
		return patchbay.config.Map(
			**shared,
			domain=_pair(name, entry, "domain", None),
			range=_pair(name, entry, "range", None),
		)

	if kind == "math":

		if "operator" not in entry or "operand" not in entry:
			raise _fail(name, "math requires `operator` and `operand`", rule="missing_field")

		return patchbay.config.Math(
			**shared,
			operator=_choice(name, entry, "operator", "add", patchbay.config.MATH_OPERATORS),
			operand=_param(name, entry, "operand", 1.0),
		)

	if kind == "quantizer":
		return patchbay.config.Quantizer(
			**shared,
			step=_param(name, entry, "step", 0.25),
			range=_pair(name, entry, "range", (0.0, 1.0)),
		)

	if kind == "ring_modulator":

		modulator = entry.get("modulator")
		if not isinstance(modulator, str) or not modulator:
			raise _fail(name, "`modulator` must name a control", rule="missing_field")

		return patchbay.config.RingModulator(
			**shared,
			mix=_param(name, entry, "mix", 0.0),
			range=_pair(name, entry, "range", (0.0, 1.0)),
			modulator=modulator,
		)

	if kind == "saturator":
		return patchbay.config.Saturator(
			**shared,
			drive=_param(name, entry, "drive", 1.0),
			range=_pair(name, entry, "range", (0.0, 1.0)),
		)

	if kind == "slew_limiter":
		return patchbay.config.SlewLimiter(
			**shared,
			rise=_param(name, entry, "rise", 0.0),
			fall=_param(name, entry, "fall", 0.0),
		)

	return patchbay.config.WaveFolder(
		**shared,
		gain=_param(name, entry, "gain", 1.0),
		iterations=_integer(name, entry, "iterations", 1),
		symmetry=_param(name, entry, "symmetry", 1.0),
		bias=_param(name, entry, "bias", 0.0),
		shape=_param(name, entry, "shape", 1.0),
		range=_pair(name, entry, "range", (0.0, 1.0)),
	)


BUILDERS: typing.Dict[str, typing.Callable[[str, Entry], patchbay.config.Control]] = {
	"slider": _slider,
	"checkbox": _checkbox,
	"select": _select,
	"separator": _separator,
	"midi": _midi,
	"osc": _osc,
	"audio": _audio,
	"ramp": _ramp,
	"triangle": _triangle,
	"random": _random,
	"random_slewed": _random_slewed,
	"round_robin": _round_robin,
	"automate": _automate,
	"snapshot_sequence": _snapshot_sequence,
	"mod": _mod,
	"effect": _effect,
}


def load_document (document: str) -> typing.Dict[str, typing.Any]:

	"""
	Load YAML text into a mapping.

	An empty document is an empty mapping.  Syntax errors and non-mapping
	documents raise :class:`patchbay.errors.ValidationError`.
	"""

	try:
		data = yaml.safe_load(document)
	except yaml.YAMLError as e:
		raise patchbay.errors.ValidationError(f"YAML syntax error: {e}", rule="syntax") from e

	if data is None:
		return {}

	if not isinstance(data, dict):
		raise patchbay.errors.ValidationError("Document must be a mapping of control names", rule="syntax")

	return data


def parse (document: str) -> patchbay.config.ConfigSet:

	"""
	Parse YAML control text into a :class:`patchbay.config.ConfigSet`.

	Raises :class:`patchbay.errors.ValidationError` for the first malformed
	entry.  References are not checked here.
	"""

	controls: typing.List[patchbay.config.Control] = []

	for key, entry in load_document(document).items():

		name = str(key)

		if not isinstance(entry, dict) or "type" not in entry:
			logger.debug(f"Skipping untyped entry {name!r}")
			continue

		control_type = entry["type"]

		if not isinstance(control_type, str) or control_type not in BUILDERS:
			raise _fail(name, f"Unknown control type {control_type!r}", rule="unknown_type")

		controls.append(BUILDERS[control_type](name, entry))

	return patchbay.config.ConfigSet(controls)
