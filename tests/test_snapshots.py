import random

import pytest

import patchbay.config
import patchbay.errors
import patchbay.snapshots


def _sequence (*stages: patchbay.config.Stage) -> patchbay.config.SnapshotSequence:

	return patchbay.config.SnapshotSequence(name="show", stages=stages)


SHOW = _sequence(
	patchbay.config.Stage("stage", 0.0, "a"),
	patchbay.config.Stage("stage", 4.0, "b"),
	patchbay.config.Stage("end", 8.0),
)


# ─── Store ────────────────────────────────────────────────────────────────────


def test_store_get_overwrite () -> None:

	"""Storing under an existing id replaces the snapshot."""

	store = patchbay.snapshots.SnapshotStore()

	store.store("1", patchbay.snapshots.Snapshot({"x": 0.1}))
	store.store("1", patchbay.snapshots.Snapshot({"x": 0.9}))

	assert len(store) == 1
	assert store.get("1")["x"] == 0.9


def test_ids_are_strings () -> None:

	"""Numeric ids are stored as their string form."""

	store = patchbay.snapshots.SnapshotStore()
	store.store(3, patchbay.snapshots.Snapshot({}))  # type: ignore[arg-type]

	assert store.ids() == ["3"]
	assert "3" in store


def test_unknown_id_raises () -> None:

	"""get and delete reject unknown ids."""

	store = patchbay.snapshots.SnapshotStore()

	with pytest.raises(patchbay.errors.SnapshotError):
		store.get("nope")

	with pytest.raises(patchbay.errors.SnapshotError):
		store.delete("nope")


def test_clear () -> None:

	"""clear empties the store."""

	store = patchbay.snapshots.SnapshotStore()
	store.store("a", patchbay.snapshots.Snapshot({}))
	store.clear()

	assert store.ids() == []


# ─── Transition ───────────────────────────────────────────────────────────────


def test_transition_interpolates_linearly () -> None:

	"""Values move linearly from start to target."""

	transition = patchbay.snapshots.Transition({"x": (0.0, 1.0)}, start_beat=10.0, duration_beats=4.0)

	assert transition.value("x", 10.0) == pytest.approx(0.0)
	assert transition.value("x", 12.0) == pytest.approx(0.5)
	assert transition.value("x", 20.0) == pytest.approx(1.0)
	assert transition.value("y", 12.0) is None


def test_transition_completion () -> None:

	"""Complete once the duration has elapsed."""

	transition = patchbay.snapshots.Transition({"x": (0.0, 1.0)}, start_beat=0.0, duration_beats=2.0)

	assert not transition.complete(1.9)
	assert transition.complete(2.0)
	assert transition.end_beat == 2.0


def test_zero_duration_transition () -> None:

	"""A zero-length transition is already at its target."""

	transition = patchbay.snapshots.Transition({"x": (0.0, 1.0)}, start_beat=5.0, duration_beats=0.0)

	assert transition.progress(5.0) == 1.0
	assert transition.complete(5.0)


# ─── Sequence runner ──────────────────────────────────────────────────────────


def test_sequence_fires_on_crossing () -> None:

	"""A stage fires on the frame that crosses its position."""

	runner = patchbay.snapshots.SequenceRunner(SHOW)

	assert runner.advance(0.0) == "a"
	assert runner.advance(2.0) is None
	assert runner.advance(4.1) == "b"
	assert runner.advance(6.0) is None


def test_sequence_wraps () -> None:

	"""The sequence repeats every length beats."""

	runner = patchbay.snapshots.SequenceRunner(SHOW)

	runner.advance(6.0)

	assert runner.advance(8.2) == "a"
	assert runner.advance(12.5) == "b"


def test_sequence_join_mid_stage_waits () -> None:

	"""Starting past a stage's window does not fire it."""

	runner = patchbay.snapshots.SequenceRunner(SHOW, window=0.0625)

	assert runner.advance(1.0) is None
	assert runner.advance(4.0) == "b"


def test_sequence_reset_uses_window_again () -> None:

	"""After reset the next frame is treated as a fresh start."""

	runner = patchbay.snapshots.SequenceRunner(SHOW)
	runner.advance(3.0)
	runner.reset()

	assert runner.advance(4.01) == "b"


def test_long_frame_fires_latest_crossed_stage () -> None:

	"""When one frame skips over several stages, the one crossed last is recalled."""

	steps = _sequence(
		patchbay.config.Stage("stage", 0.0, "a"),
		patchbay.config.Stage("stage", 1.0, "b"),
		patchbay.config.Stage("stage", 2.0, "c"),
		patchbay.config.Stage("stage", 3.0, "d"),
		patchbay.config.Stage("end", 4.0),
	)

	runner = patchbay.snapshots.SequenceRunner(steps)

	assert runner.advance(0.5) is None
	assert runner.advance(2.5) == "c"

	# Wrapping: d, then a and b of the next pass.
	assert runner.advance(5.5) == "b"


def test_empty_sequence_never_fires () -> None:

	"""A sequence with no length is inert."""

	runner = patchbay.snapshots.SequenceRunner(_sequence())

	assert runner.advance(0.0) is None


# ─── Randomisation ────────────────────────────────────────────────────────────


def test_stepped_values_land_on_steps () -> None:

	"""Random slider values respect range and step."""

	rng = random.Random(7)

	for _ in range(50):
		value = patchbay.snapshots.stepped(rng, 1.0, 2.0, 0.25)
		assert 1.0 <= value <= 2.0
		assert ((value - 1.0) / 0.25) == pytest.approx(round((value - 1.0) / 0.25))


def test_random_value_per_kind () -> None:

	"""Each UI kind draws from its own domain; others give None."""

	rng = random.Random(1)

	slider = patchbay.config.Slider(name="s", range=(0.0, 10.0), step=1.0)
	checkbox = patchbay.config.Checkbox(name="c")
	select = patchbay.config.Select(name="m", options=("a", "b"), default="a")

	assert 0.0 <= patchbay.snapshots.random_value(slider, rng) <= 10.0  # type: ignore[operator]
	assert isinstance(patchbay.snapshots.random_value(checkbox, rng), bool)
	assert patchbay.snapshots.random_value(select, rng) in ("a", "b")
	assert patchbay.snapshots.random_value(patchbay.config.Ramp(name="r"), rng) is None
