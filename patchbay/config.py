"""Typed model of a control document.

Every control kind is a frozen dataclass.  The set of kinds is closed: the
``kind`` class attribute is the document's ``type`` string and
``category`` groups kinds by how the hub evaluates them.

Numeric parameters that may be modulated hold either a float or a
:class:`ModRef` (written ``"$name"`` in the document).
"""

import dataclasses
import typing

if typing.TYPE_CHECKING:
	import patchbay.expression


Range = typing.Tuple[float, float]

UI = "ui"
TRANSPORT = "transport"
ANIMATION = "animation"
EFFECT = "effect"
ROUTE = "route"
LAYOUT = "layout"
SEQUENCE = "sequence"

READABLE_CATEGORIES = frozenset({UI, TRANSPORT, ANIMATION})

CONSTRAIN_MODES = ("none", "clamp", "fold", "wrap")
WAVE_SHAPES = ("sine", "triangle", "square")
AUTOMATE_MODES = ("loop", "once")
MATH_OPERATORS = ("add", "mult", "curve")
BREAKPOINT_KINDS = ("step", "ramp", "wave", "random", "random_smooth", "end")


@dataclasses.dataclass(frozen=True)
class ModRef:

	"""A ``$name`` reference to another control's current value."""

	name: str

	def __str__ (self) -> str:
		return f"${self.name}"


Param = typing.Union[float, ModRef]


# ─── Base ─────────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Control:

	"""
	Fields shared by every control.

	``var`` is a second lookup key used by the rendering layer; ``bypass``
	is a literal value that replaces whatever the control would compute.
	"""

	name: str
	var: typing.Optional[str] = None
	bypass: typing.Optional[float] = None

	kind: typing.ClassVar[str] = ""
	category: typing.ClassVar[str] = ""

	@property
	def readable (self) -> bool:
		return self.category in READABLE_CATEGORIES


# ─── UI ───────────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Slider (Control):

	range: Range = (0.0, 1.0)
	default: float = 0.0
	step: float = 0.0001
	disabled: typing.Optional["patchbay.expression.Expression"] = None

	kind: typing.ClassVar[str] = "slider"
	category: typing.ClassVar[str] = UI


@dataclasses.dataclass(frozen=True)
class Checkbox (Control):

	default: bool = False
	disabled: typing.Optional["patchbay.expression.Expression"] = None

	kind: typing.ClassVar[str] = "checkbox"
	category: typing.ClassVar[str] = UI


@dataclasses.dataclass(frozen=True)
class Select (Control):

	options: typing.Tuple[str, ...] = ()
	default: str = ""
	disabled: typing.Optional["patchbay.expression.Expression"] = None

	kind: typing.ClassVar[str] = "select"
	category: typing.ClassVar[str] = UI


@dataclasses.dataclass(frozen=True)
class Separator (Control):

	"""Presentation only: groups controls in a UI and has no value."""

	kind: typing.ClassVar[str] = "separator"
	category: typing.ClassVar[str] = LAYOUT


# ─── Transport ────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Midi (Control):

	channel: int = 0
	cc: int = 0
	range: Range = (0.0, 1.0)
	default: float = 0.0

	kind: typing.ClassVar[str] = "midi"
	category: typing.ClassVar[str] = TRANSPORT


@dataclasses.dataclass(frozen=True)
class Osc (Control):

	range: Range = (0.0, 1.0)
	default: float = 0.0

	kind: typing.ClassVar[str] = "osc"
	category: typing.ClassVar[str] = TRANSPORT


@dataclasses.dataclass(frozen=True)
class Audio (Control):

	"""
	An input level detected from one channel of an audio interface.

	``slew`` is a (rise, fall) pair, ``pre`` a pre-emphasis coefficient
	and ``detect`` blends peak (0) and RMS (1) detection.
	"""

	channel: int = 0
	slew: Range = (0.0, 0.0)
	pre: float = 0.0
	detect: float = 0.0
	range: Range = (0.0, 1.0)
	default: float = 0.0

	kind: typing.ClassVar[str] = "audio"
	category: typing.ClassVar[str] = TRANSPORT


# ─── Animation ────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Ramp (Control):

	beats: Param = 1.0
	range: Range = (0.0, 1.0)
	phase: Param = 0.0

	kind: typing.ClassVar[str] = "ramp"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class Triangle (Control):

	beats: Param = 1.0
	range: Range = (0.0, 1.0)
	phase: Param = 0.0

	kind: typing.ClassVar[str] = "triangle"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class Random (Control):

	beats: Param = 1.0
	range: Range = (0.0, 1.0)
	delay: Param = 0.0
	bias: Param = 0.0
	stem: typing.Optional[int] = None

	kind: typing.ClassVar[str] = "random"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class RandomSlewed (Control):

	beats: Param = 1.0
	range: Range = (0.0, 1.0)
	slew: Param = 0.65
	delay: Param = 0.0
	bias: Param = 0.0
	stem: typing.Optional[int] = None

	kind: typing.ClassVar[str] = "random_slewed"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class RoundRobin (Control):

	values: typing.Tuple[float, ...] = ()
	beats: Param = 1.0
	slew: Param = 0.0
	stem: typing.Optional[int] = None

	kind: typing.ClassVar[str] = "round_robin"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class Breakpoint:

	"""
	One keyframe of an :class:`Automate` lane.

	Only the fields relevant to ``kind`` are read: ``easing`` for ramps,
	``shape``/``frequency``/``width``/``amplitude``/``constrain`` for
	waves, ``amplitude`` for random, and ``frequency``/``amplitude``/
	``easing``/``constrain`` for random_smooth.
	"""

	kind: str
	position: Param
	value: Param
	easing: str = "linear"
	shape: str = "sine"
	frequency: Param = 0.25
	amplitude: Param = 0.25
	width: Param = 0.5
	constrain: str = "none"


@dataclasses.dataclass(frozen=True)
class Automate (Control):

	breakpoints: typing.Tuple[Breakpoint, ...] = ()
	mode: str = "loop"

	kind: typing.ClassVar[str] = "automate"
	category: typing.ClassVar[str] = ANIMATION


@dataclasses.dataclass(frozen=True)
class Stage:

	"""A snapshot sequence entry; ``snapshot`` is None for the closing ``end``."""

	kind: str
	position: float
	snapshot: typing.Optional[str] = None


@dataclasses.dataclass(frozen=True)
class SnapshotSequence (Control):

	stages: typing.Tuple[Stage, ...] = ()
	disabled: typing.Optional["patchbay.expression.Expression"] = None

	kind: typing.ClassVar[str] = "snapshot_sequence"
	category: typing.ClassVar[str] = SEQUENCE

	@property
	def length (self) -> float:
		return self.stages[-1].position if self.stages else 0.0


# ─── Effects ──────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Effect (Control):

	category: typing.ClassVar[str] = EFFECT


@dataclasses.dataclass(frozen=True)
class Constrain (Effect):

	mode: str = "clamp"
	range: Range = (0.0, 1.0)

	kind: typing.ClassVar[str] = "constrain"


@dataclasses.dataclass(frozen=True)
class Hysteresis (Effect):

	lower_threshold: Param = 0.3
	upper_threshold: Param = 0.7
	output_low: Param = 0.0
	output_high: Param = 1.0
	pass_through: bool = False

	kind: typing.ClassVar[str] = "hysteresis"


@dataclasses.dataclass(frozen=True)
class Map (Effect):

	domain: Range = (0.0, 1.0)
	range: Range = (0.0, 1.0)

	kind: typing.ClassVar[str] = "map"


@dataclasses.dataclass(frozen=True)
class Math (Effect):

	operator: str = "add"
	operand: Param = 1.0

	kind: typing.ClassVar[str] = "math"


@dataclasses.dataclass(frozen=True)
class Quantizer (Effect):

	step: Param = 0.25
	range: Range = (0.0, 1.0)

	kind: typing.ClassVar[str] = "quantizer"


@dataclasses.dataclass(frozen=True)
class RingModulator (Effect):

	mix: Param = 0.0
	range: Range = (0.0, 1.0)
	modulator: str = ""

	kind: typing.ClassVar[str] = "ring_modulator"


@dataclasses.dataclass(frozen=True)
class Saturator (Effect):

	drive: Param = 1.0
	range: Range = (0.0, 1.0)

	kind: typing.ClassVar[str] = "saturator"


@dataclasses.dataclass(frozen=True)
class SlewLimiter (Effect):

	rise: Param = 0.0
	fall: Param = 0.0

	kind: typing.ClassVar[str] = "slew_limiter"


@dataclasses.dataclass(frozen=True)
class WaveFolder (Effect):

	gain: Param = 1.0
	iterations: int = 1
	symmetry: Param = 1.0
	bias: Param = 0.0
	shape: Param = 1.0
	range: Range = (0.0, 1.0)

	kind: typing.ClassVar[str] = "wave_folder"


# ─── Routes ───────────────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Mod (Control):

	"""Runs ``source``'s value through ``modulators`` in order."""

	source: str = ""
	modulators: typing.Tuple[str, ...] = ()

	kind: typing.ClassVar[str] = "mod"
	category: typing.ClassVar[str] = ROUTE


CONTROL_TYPES: typing.Dict[str, typing.Type[Control]] = {
	cls.kind: cls
	for cls in (
		Slider, Checkbox, Select, Separator,
		Midi, Osc, Audio,
		Ramp, Triangle, Random, RandomSlewed, RoundRobin, Automate, SnapshotSequence,
		Mod,
	)
}

EFFECT_TYPES: typing.Dict[str, typing.Type[Effect]] = {
	cls.kind: cls
	for cls in (Constrain, Hysteresis, Map, Math, Quantizer, RingModulator, Saturator, SlewLimiter, WaveFolder)
}


def param_refs (control: Control) -> typing.Iterator[typing.Tuple[str, ModRef]]:

	"""
	Yield ``(keypath, ref)`` for every ``$name`` reference held by *control*.

	Breakpoint fields use keypaths like ``breakpoints.2.value``.
	"""

	for field in dataclasses.fields(control):

		value = getattr(control, field.name)

		if isinstance(value, ModRef):
			yield field.name, value

		elif field.name == "breakpoints":
			for index, breakpoint in enumerate(value):
				for bp_field in dataclasses.fields(breakpoint):
					bp_value = getattr(breakpoint, bp_field.name)
					if isinstance(bp_value, ModRef):
						yield f"breakpoints.{index}.{bp_field.name}", bp_value


def dependencies_of (control: Control) -> typing.List[str]:

	"""
	Names *control* reads when it is evaluated, in first-seen order.

	Covers ``$name`` references, a ring modulator's ``modulator`` and a
	route's ``source`` and ``modulators``.
	"""

	names: typing.List[str] = []

	def add (name: str) -> None:
		if name and name not in names:
			names.append(name)

	for _, ref in param_refs(control):
		add(ref.name)

	if isinstance(control, RingModulator):
		add(control.modulator)

	if isinstance(control, Mod):
		add(control.source)
		for modulator in control.modulators:
			add(modulator)

	return names


class ConfigSet:

	"""
	An immutable, ordered collection of controls from one document.

	Iteration and :meth:`names` follow declaration order.  ``var`` aliases
	are resolved by :meth:`resolve`.
	"""

	def __init__ (self, controls: typing.Iterable[Control] = ()) -> None:

		self._controls: typing.Dict[str, Control] = {}
		self._aliases: typing.Dict[str, str] = {}

		for control in controls:
			self._controls[control.name] = control
			if control.var:
				self._aliases[control.var] = control.name

	def __contains__ (self, name: object) -> bool:
		return name in self._controls

	def __getitem__ (self, name: str) -> Control:
		return self._controls[name]

	def __iter__ (self) -> typing.Iterator[Control]:
		return iter(self._controls.values())

	def __len__ (self) -> int:
		return len(self._controls)

	def get (self, name: str) -> typing.Optional[Control]:
		return self._controls.get(name)

	def names (self) -> typing.List[str]:
		return list(self._controls)

	def resolve (self, name: str) -> str:

		"""Return the control name for *name*, following a ``var`` alias."""

		if name in self._controls:
			return name

		return self._aliases.get(name, name)

	@property
	def aliases (self) -> typing.Dict[str, str]:
		return dict(self._aliases)

	def of_category (self, *categories: str) -> typing.List[Control]:
		return [c for c in self._controls.values() if c.category in categories]

	def routes_for (self, source: str) -> typing.List[Mod]:
		return [c for c in self._controls.values() if isinstance(c, Mod) and c.source == source]

	@property
	def snapshot_sequence (self) -> typing.Optional[SnapshotSequence]:

		for control in self._controls.values():
			if isinstance(control, SnapshotSequence):
				return control

		return None
