"""Beat-synchronised animation primitives.

Each function maps a musical position (in beats) to a value.  They are pure
except where a slew limiter needs to remember the previous output; that
memory lives in a :class:`StateArena` owned by the hub so it survives
reloads of unrelated controls.

Parameters arrive already resolved to floats; degenerate values
(``beats <= 0``, zero-length segments) produce a sensible value instead of
raising.
"""

import hashlib
import math
import random as _random
import typing

import patchbay.config
import patchbay.easing
import patchbay.effects


# ─── State ────────────────────────────────────────────────────────────────────


StateKey = typing.Tuple[typing.Any, ...]


class StateArena:

	"""
	Persistent per-control state cells, keyed by tuples.

	The first element of a key names the cell family (``"slew"``,
	``"effect"``, ``"audio"``); the rest identify the owner, usually by name
	or stem.  :meth:`retain` drops every cell the new document no longer
	owns.
	"""

	def __init__ (self, cells: typing.Optional[typing.Dict[StateKey, typing.Any]] = None) -> None:

		self._cells: typing.Dict[StateKey, typing.Any] = dict(cells or {})

	def get (self, key: StateKey, default: typing.Any = None) -> typing.Any:
		return self._cells.get(key, default)

	def set (self, key: StateKey, value: typing.Any) -> None:
		self._cells[key] = value

	def __contains__ (self, key: object) -> bool:
		return key in self._cells

	def __len__ (self) -> int:
		return len(self._cells)

	def keys (self) -> typing.List[StateKey]:
		return list(self._cells)

	def retain (self, live: typing.Callable[[StateKey], bool]) -> "StateArena":

		"""Return a copy holding only the cells for which *live* is true."""

		return StateArena({key: value for key, value in self._cells.items() if live(key)})


# ─── Helpers ──────────────────────────────────────────────────────────────────


def stable_stem (name: str) -> int:

	"""
	A seed derived from a control name.

	Uses blake2b rather than ``hash()`` so the value does not change
	between interpreter runs.
	"""

	digest = hashlib.blake2b(name.encode("utf-8"), digest_size=8).digest()
	return int.from_bytes(digest, "big")


def seeded_unit (*seed: typing.Any) -> float:

	"""A uniform float in [0, 1) that depends only on *seed*."""

	return _random.Random(":".join(repr(part) for part in seed)).random()


def _scale (t: float, value_range: patchbay.config.Range) -> float:
	low, high = value_range
	return low + t * (high - low)


def _cycle_index (beat: float, beats: float, delay: float) -> int:

	if beats <= 0.0:
		return 0

	elapsed = beat - delay

	if elapsed < 0.0:
		return 0

	return int(math.floor(elapsed / beats))


def slew_key (stem: int, delay: typing.Hashable = 0.0) -> StateKey:
	return ("slew", stem, delay)


def _slewed (value: float, slew: float, state: StateArena, key: StateKey) -> float:

	previous = state.get(key)

	if previous is not None:
		value = patchbay.effects.slew(previous, value, slew, slew)

	state.set(key, value)
	return value


# ─── Periodic ─────────────────────────────────────────────────────────────────


def ramp (beat: float, beats: float, value_range: patchbay.config.Range, phase: float = 0.0) -> float:

	"""Sawtooth: ``frac(beat / beats + phase)`` mapped into *value_range*."""

	if beats <= 0.0:
		return value_range[0]

	return _scale((beat / beats + phase) % 1.0, value_range)


def triangle (beat: float, beats: float, value_range: patchbay.config.Range, phase: float = 0.0) -> float:

	"""
	Triangle wave of period *beats*: min -> max -> min.

	*phase* is a fraction of the period; 0.5 starts at the top and gives
	max -> min -> max.  Its sign is ignored.
	"""

	if beats <= 0.0:
		return value_range[0]

	x = (beat / beats + abs(phase)) % 1.0
	x = x * 2.0 if x < 0.5 else (1.0 - x) * 2.0

	return _scale(x, value_range)


# ─── Random ───────────────────────────────────────────────────────────────────


def random (
	beat: float,
	beats: float,
	value_range: patchbay.config.Range,
	stem: int,
	delay: float = 0.0,
	bias: float = 0.0
) -> float:

	"""
	One deterministic draw per cycle of *beats*, starting after *delay*.

	The draw depends only on ``(stem, cycle_index)``.  *bias* in [-1, 1]
	skews draws toward the top (positive) or bottom (negative) of the range.
	"""

	t = seeded_unit(stem, _cycle_index(beat, beats, delay))

	if bias:
		t = patchbay.easing.curve(t, bias)

	return _scale(t, value_range)


def random_slewed (
	beat: float,
	beats: float,
	value_range: patchbay.config.Range,
	stem: int,
	state: StateArena,
	slew: float = 0.65,
	delay: float = 0.0,
	bias: float = 0.0,
	key: typing.Optional[StateKey] = None
) -> float:

	"""
	:func:`random` smoothed by a one-pole slew limiter.

	The limiter cell is keyed by stem and delay, so controls sharing a stem
	and delay follow the same curve.  When the delay is modulated, pass the
	cell *key* built from the declared delay so the cell stays put as the
	delay moves.  *slew* 0 is instant and 1 frozen.
	"""

	value = random(beat, beats, value_range, stem, delay, bias)
	return _slewed(value, slew, state, key if key is not None else slew_key(stem, delay))


def round_robin (
	beat: float,
	values: typing.Sequence[float],
	beats: float,
	stem: int,
	state: StateArena,
	slew: float = 0.0
) -> float:

	"""Hold each of *values* for *beats* in turn; an empty list yields 0."""

	if not values:
		return 0.0

	index = 0 if beats <= 0.0 else int(math.floor(beat / beats)) % len(values)
	value = values[index]

	if slew == 0.0:
		return value

	return _slewed(value, slew, state, slew_key(stem))


# ─── Automate ─────────────────────────────────────────────────────────────────


def _value_noise (x: float, seed: float) -> float:

	"""Smooth 1-D value noise in [-1, 1], interpolated between hashed lattice points."""

	def lattice (i: float) -> float:
		n = math.sin(i * 12.9898 + seed * 0.12345) * 43758.5453
		return (n - math.floor(n)) * 2.0 - 1.0

	i = math.floor(x)
	f = x - i
	f = f * f * (3.0 - 2.0 * f)

	return patchbay.easing.lerp(lattice(i), lattice(i + 1.0), f)


def _segment_ramp (p1: patchbay.config.Breakpoint, p2: patchbay.config.Breakpoint, elapsed: float) -> float:

	duration = p2.position - p1.position

	if duration <= 0.0:
		return p2.value

	t = min(1.0, max(0.0, (elapsed - p1.position) / duration))
	return patchbay.easing.lerp(p1.value, p2.value, patchbay.easing.get_easing(p1.easing)(t))


def _wave (p1: patchbay.config.Breakpoint, elapsed: float) -> float:

	t = (elapsed / p1.frequency) % 1.0 if p1.frequency > 0.0 else 0.0

	if p1.shape == "triangle":
		x = (t + 0.25) % 1.0
		return 4.0 * x - 1.0 if x < p1.width else 3.0 - 4.0 * x

	if p1.shape == "square":
		return 1.0 if t < p1.width else -1.0

	m = 2.0 * (p1.width - 0.5)
	return math.sin(2.0 * math.pi * t + m * math.sin(2.0 * math.pi * t))


def automate (beat: float, breakpoints: typing.Sequence[patchbay.config.Breakpoint], mode: str = "loop") -> float:

	"""
	Evaluate a breakpoint lane at *beat*.

	*breakpoints* must be validated and have every parameter resolved to a
	float.  In ``loop`` mode the lane repeats every ``breakpoints[-1].position``
	beats; in ``once`` mode it holds the final value after the end.

	The segment starting at ``bp[i]`` runs to ``bp[i + 1]`` and is shaped by
	``bp[i].kind``: ``step``/``end`` hold, ``ramp`` interpolates (eased) to
	the next value, ``wave`` adds an oscillation to that ramp, ``random``
	draws once per pass around ``bp[i].value`` and ``random_smooth`` adds
	continuous noise to the ramp.
	"""

	if len(breakpoints) == 1:
		return breakpoints[0].value

	total = breakpoints[-1].position

	if total <= 0.0:
		return breakpoints[-1].value

	if mode == "once":
		if beat >= total:
			return breakpoints[-1].value
		elapsed = max(0.0, beat)
	else:
		elapsed = beat % total

	loop_index = int(math.floor(beat / total))

	index = 0
	for i in range(len(breakpoints) - 1):
		if breakpoints[i].position <= elapsed:
			index = i

	p1 = breakpoints[index]
	p2 = breakpoints[index + 1]

	if p1.kind in ("step", "end"):
		return p1.value

	if p1.kind == "ramp":
		return _segment_ramp(p1, p2, elapsed)

	if p1.kind == "wave":
		value = _segment_ramp(p1, p2, elapsed) + _wave(p1, elapsed) * p1.amplitude
		return patchbay.effects.constrain(value, p1.constrain, (0.0, 1.0))

	seed = (p1.position, p2.position, p1.value, p1.amplitude, loop_index)

	if p1.kind == "random":
		return p1.value + (seeded_unit(*seed) * 2.0 - 1.0) * p1.amplitude

	# random_smooth
	value = _segment_ramp(p1, p2, elapsed)
	x = elapsed / p1.frequency if p1.frequency > 0.0 else 0.0
	noise = _value_noise(x, seeded_unit(*seed) * 1000.0)
	return patchbay.effects.constrain(value + noise * p1.amplitude, p1.constrain, (0.0, 1.0))
