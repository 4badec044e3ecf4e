"""Snapshots, transitions and the snapshot sequence scheduler.

The hub owns one :class:`SnapshotStore`, at most one active
:class:`Transition` and, when the document declares a
``snapshot_sequence``, one :class:`SequenceRunner`.  Everything here is
plain state; the hub decides when to capture, start and finish.
"""

import dataclasses
import math
import random
import typing

import patchbay.config
import patchbay.easing
import patchbay.errors

Value = typing.Union[float, bool, str]


@dataclasses.dataclass(frozen=True)
class Snapshot:

	"""Resolved values of every readable control at capture time."""

	values: typing.Mapping[str, Value]

	def __contains__ (self, name: object) -> bool:
		return name in self.values

	def __getitem__ (self, name: str) -> Value:
		return self.values[name]


class SnapshotStore:

	"""Named snapshots.  Storing under an existing id overwrites it."""

	def __init__ (self) -> None:

		self._snapshots: typing.Dict[str, Snapshot] = {}

	def store (self, snapshot_id: str, snapshot: Snapshot) -> None:
		self._snapshots[str(snapshot_id)] = snapshot

	def get (self, snapshot_id: str) -> Snapshot:

		"""Raises :class:`patchbay.errors.SnapshotError` for unknown ids."""

		try:
			return self._snapshots[str(snapshot_id)]
		except KeyError:
			raise patchbay.errors.SnapshotError(f"No snapshot named {snapshot_id!r}") from None

	def delete (self, snapshot_id: str) -> None:

		if str(snapshot_id) not in self._snapshots:
			raise patchbay.errors.SnapshotError(f"No snapshot named {snapshot_id!r}")

		del self._snapshots[str(snapshot_id)]

	def clear (self) -> None:
		self._snapshots.clear()

	def ids (self) -> typing.List[str]:
		return sorted(self._snapshots)

	def __contains__ (self, snapshot_id: object) -> bool:
		return str(snapshot_id) in self._snapshots

	def __len__ (self) -> int:
		return len(self._snapshots)


@dataclasses.dataclass
class Transition:

	"""
	Linear interpolation of float values between two states.

	``values`` maps control name to ``(from, to)``.  The transition is
	complete once ``beat - start_beat >= duration_beats``.
	"""

	values: typing.Dict[str, typing.Tuple[float, float]]
	start_beat: float
	duration_beats: float

	@property
	def end_beat (self) -> float:
		return self.start_beat + self.duration_beats

	def progress (self, beat: float) -> float:

		if self.duration_beats <= 0.0:
			return 1.0

		return max(0.0, min(1.0, (beat - self.start_beat) / self.duration_beats))

	def complete (self, beat: float) -> bool:
		return beat - self.start_beat >= self.duration_beats

	def value (self, name: str, beat: float) -> typing.Optional[float]:

		"""The interpolated value of *name*, or None if it is not part of this transition."""

		if name not in self.values:
			return None

		start, end = self.values[name]
		return patchbay.easing.lerp(start, end, self.progress(beat))


class SequenceRunner:

	"""
	Fires snapshot recalls as the beat crosses each stage of a sequence.

	The sequence repeats every ``sequence.length`` beats.  On the first
	beat after a (re)start a stage fires only if the phase is within
	*window* beats after its position, so joining mid-stage does not
	recall a stale snapshot.  At most one stage fires per call: when a long
	frame crosses several, the one crossed last wins.
	"""

	def __init__ (self, sequence: patchbay.config.SnapshotSequence, window: float = 0.0625) -> None:

		self.sequence = sequence
		self.window = max(window, 1e-6)
		self._last_phase: typing.Optional[float] = None

	def reset (self) -> None:
		self._last_phase = None

	@staticmethod
	def _crossed (previous: float, phase: float, position: float) -> bool:

		if phase == previous:
			return False

		if previous <= phase:
			return previous < position <= phase

		# Wrapped past the end of the sequence.
		return position > previous or position <= phase

	def advance (self, beat: float) -> typing.Optional[str]:

		"""Return the snapshot id to recall at *beat*, if any."""

		length = self.sequence.length

		if length <= 0.0:
			self._last_phase = None
			return None

		phase = beat % length
		previous = self._last_phase
		self._last_phase = phase

		latest: typing.Optional[patchbay.config.Stage] = None
		latest_age = 0.0

		for stage in self.sequence.stages[:-1]:

			if previous is None:
				fire = stage.position <= phase < stage.position + self.window
			else:
				fire = self._crossed(previous, phase, stage.position)

			if not fire:
				continue

			# How long ago the beat passed this stage; a skipped-over stage is older.
			age = (phase - stage.position) % length

			if latest is None or age < latest_age:
				latest = stage
				latest_age = age

		return latest.snapshot if latest is not None else None


# ─── Randomisation ────────────────────────────────────────────────────────────


def stepped (rng: random.Random, low: float, high: float, step: float) -> float:

	"""A uniform value in ``[low, high]`` snapped to multiples of *step* above *low*."""

	low, high = min(low, high), max(low, high)
	value = rng.uniform(low, high)

	if step > 0.0:
		value = low + math.floor((value - low) / step + 0.5) * step

	return max(low, min(high, value))


def random_value (control: patchbay.config.Control, rng: random.Random) -> typing.Optional[Value]:

	"""
	Draw a value for *control* using its own rule: sliders by range and
	step, checkboxes as a coin flip, selects from their options.  Other
	kinds return None.
	"""

	if isinstance(control, patchbay.config.Slider):
		return stepped(rng, control.range[0], control.range[1], control.step)

	if isinstance(control, patchbay.config.Checkbox):
		return rng.random() < 0.5

	if isinstance(control, patchbay.config.Select):
		return rng.choice(control.options)

	return None
