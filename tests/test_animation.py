import pytest

import patchbay.animation
import patchbay.config


def _bp (kind: str, position: float, value: float, **fields) -> patchbay.config.Breakpoint:

	"""Shorthand for a resolved breakpoint."""

	return patchbay.config.Breakpoint(kind, position, value, **fields)


# ─── Periodic ─────────────────────────────────────────────────────────────────


def test_ramp_round_trip () -> None:

	"""A 4-beat ramp rises 0 -> 1 and wraps at the period."""

	ramp = patchbay.animation.ramp

	assert ramp(0.0, 4.0, (0.0, 1.0)) == pytest.approx(0.0)
	assert ramp(2.0, 4.0, (0.0, 1.0)) == pytest.approx(0.5)
	assert 0.99 < ramp(3.999, 4.0, (0.0, 1.0)) < 1.0
	assert ramp(4.0, 4.0, (0.0, 1.0)) == pytest.approx(0.0)


def test_ramp_phase_and_range () -> None:

	"""phase offsets the cycle; range scales the output."""

	assert patchbay.animation.ramp(1.0, 4.0, (0.0, 10.0), 0.5) == pytest.approx(7.5)


def test_ramp_zero_beats_is_safe () -> None:

	"""beats <= 0 yields the bottom of the range instead of dividing by zero."""

	assert patchbay.animation.ramp(3.0, 0.0, (2.0, 5.0)) == 2.0


def test_triangle_min_max_min () -> None:

	"""A triangle rises to the top at half period and falls back."""

	triangle = patchbay.animation.triangle

	assert triangle(0.0, 4.0, (0.0, 10.0)) == pytest.approx(0.0)
	assert triangle(1.0, 4.0, (0.0, 10.0)) == pytest.approx(5.0)
	assert triangle(2.0, 4.0, (0.0, 10.0)) == pytest.approx(10.0)
	assert triangle(3.0, 4.0, (0.0, 10.0)) == pytest.approx(5.0)


def test_triangle_half_phase_inverts () -> None:

	"""phase 0.5 gives max -> min -> max."""

	triangle = patchbay.animation.triangle

	assert triangle(0.0, 4.0, (0.0, 10.0), 0.5) == pytest.approx(10.0)
	assert triangle(2.0, 4.0, (0.0, 10.0), 0.5) == pytest.approx(0.0)


# ─── Random ───────────────────────────────────────────────────────────────────


def test_stable_stem_is_deterministic () -> None:

	"""Stems come from the name, not from the interpreter's salted hash."""

	assert patchbay.animation.stable_stem("alpha") == patchbay.animation.stable_stem("alpha")
	assert patchbay.animation.stable_stem("alpha") != patchbay.animation.stable_stem("beta")


def test_random_same_stem_same_sequence () -> None:

	"""Two random controls with the same stem and beats agree every cycle."""

	for beat in range(50):
		a = patchbay.animation.random(beat + 0.5, 1.0, (0.0, 1.0), 1234)
		b = patchbay.animation.random(beat + 0.5, 1.0, (0.0, 1.0), 1234)
		assert a == b


def test_random_auto_stems_do_not_collide () -> None:

	"""Stems derived from different names give different sequences."""

	stem_a = patchbay.animation.stable_stem("left")
	stem_b = patchbay.animation.stable_stem("right")

	a = [patchbay.animation.random(float(beat), 1.0, (0.0, 1.0), stem_a) for beat in range(1000)]
	b = [patchbay.animation.random(float(beat), 1.0, (0.0, 1.0), stem_b) for beat in range(1000)]

	assert a != b
	assert sum(1 for x, y in zip(a, b) if x == y) < 5


def test_random_holds_within_cycle () -> None:

	"""One draw per cycle: values inside a cycle are equal."""

	random = patchbay.animation.random

	assert random(4.1, 2.0, (0.0, 1.0), 7) == random(5.9, 2.0, (0.0, 1.0), 7)


def test_random_in_range () -> None:

	"""Draws stay inside the range."""

	for beat in range(200):
		value = patchbay.animation.random(float(beat), 1.0, (-2.0, 3.0), 99)
		assert -2.0 <= value <= 3.0


def test_random_delay_holds_first_draw () -> None:

	"""Before the delay has elapsed the first cycle's draw is used."""

	random = patchbay.animation.random

	assert random(0.0, 1.0, (0.0, 1.0), 5, delay=3.0) == random(3.5, 1.0, (0.0, 1.0), 5, delay=3.0)


def test_random_positive_bias_skews_up () -> None:

	"""A positive bias never lowers a draw."""

	for beat in range(100):
		plain = patchbay.animation.random(float(beat), 1.0, (0.0, 1.0), 11)
		biased = patchbay.animation.random(float(beat), 1.0, (0.0, 1.0), 11, bias=0.8)
		assert biased >= plain - 1e-12


def test_random_slewed_zero_slew_is_instant () -> None:

	"""slew 0 follows the raw draw exactly."""

	state = patchbay.animation.StateArena()

	for beat in range(5):
		raw = patchbay.animation.random(float(beat), 1.0, (0.0, 1.0), 3)
		assert patchbay.animation.random_slewed(float(beat), 1.0, (0.0, 1.0), 3, state, slew=0.0) == pytest.approx(raw)


def test_random_slewed_moves_part_way () -> None:

	"""With slew 0.5 each step covers half the distance to the new draw."""

	state = patchbay.animation.StateArena()

	first = patchbay.animation.random_slewed(0.0, 1.0, (0.0, 1.0), 3, state, slew=0.5)
	target = patchbay.animation.random(1.0, 1.0, (0.0, 1.0), 3)
	second = patchbay.animation.random_slewed(1.0, 1.0, (0.0, 1.0), 3, state, slew=0.5)

	assert second == pytest.approx(first + 0.5 * (target - first))
	assert patchbay.animation.slew_key(3, 0.0) in state


def test_round_robin_cycles_values () -> None:

	"""Each value is held for beats, then the list repeats."""

	state = patchbay.animation.StateArena()
	values = (1.0, 2.0, 3.0)

	assert patchbay.animation.round_robin(0.5, values, 2.0, 0, state) == 1.0
	assert patchbay.animation.round_robin(2.0, values, 2.0, 0, state) == 2.0
	assert patchbay.animation.round_robin(5.0, values, 2.0, 0, state) == 3.0
	assert patchbay.animation.round_robin(6.0, values, 2.0, 0, state) == 1.0


def test_round_robin_empty_is_zero () -> None:

	"""An empty value list yields 0."""

	assert patchbay.animation.round_robin(3.0, (), 1.0, 0, patchbay.animation.StateArena()) == 0.0


# ─── Automate ─────────────────────────────────────────────────────────────────


LANE = (
	_bp("ramp", 0.0, 0.0),
	_bp("step", 4.0, 10.0),
	_bp("end", 8.0, 10.0),
)


def test_automate_ramp_then_hold () -> None:

	"""A ramp segment interpolates; a step segment holds."""

	assert patchbay.animation.automate(2.0, LANE) == pytest.approx(5.0)
	assert patchbay.animation.automate(4.0, LANE) == pytest.approx(10.0)
	assert patchbay.animation.automate(6.0, LANE) == pytest.approx(10.0)


def test_automate_step_then_ramp () -> None:

	"""A step holds its value until the next breakpoint, where a ramp takes over and the lane wraps at its end."""

	lane = (
		_bp("step", 0.0, 0.0),
		_bp("ramp", 4.0, 0.0),
		_bp("end", 8.0, 10.0),
	)

	assert patchbay.animation.automate(2.0, lane) == pytest.approx(0.0)
	assert patchbay.animation.automate(6.0, lane) == pytest.approx(5.0)
	assert patchbay.animation.automate(7.99, lane) == pytest.approx(9.975)
	assert patchbay.animation.automate(8.25, lane) == pytest.approx(patchbay.animation.automate(0.25, lane))
	assert patchbay.animation.automate(8.25, lane) == pytest.approx(0.0)


def test_automate_loop_wraps () -> None:

	"""In loop mode the lane repeats every final position."""

	assert patchbay.animation.automate(8.5, LANE) == pytest.approx(patchbay.animation.automate(0.5, LANE))
	assert patchbay.animation.automate(8.5, LANE) == pytest.approx(1.25)


def test_automate_once_holds_final_value () -> None:

	"""In once mode the lane stops at its final value."""

	assert patchbay.animation.automate(9.0, LANE, "once") == pytest.approx(10.0)
	assert patchbay.animation.automate(2.0, LANE, "once") == pytest.approx(5.0)


def test_automate_single_breakpoint () -> None:

	"""A lone breakpoint holds its value."""

	assert patchbay.animation.automate(3.0, (_bp("end", 0.0, 0.7),)) == 0.7


def test_automate_eased_ramp () -> None:

	"""The ramp segment uses the start breakpoint's easing."""

	lane = (_bp("ramp", 0.0, 0.0, easing="ease_in"), _bp("end", 4.0, 1.0))

	assert patchbay.animation.automate(2.0, lane) == pytest.approx(0.25)


def test_automate_square_wave () -> None:

	"""A wave segment adds the oscillation, scaled by amplitude, to the ramp."""

	lane = (
		_bp("wave", 0.0, 0.5, shape="square", frequency=1.0, amplitude=0.25, width=0.5),
		_bp("end", 4.0, 0.5),
	)

	assert patchbay.animation.automate(0.25, lane) == pytest.approx(0.75)
	assert patchbay.animation.automate(0.75, lane) == pytest.approx(0.25)


def test_automate_wave_constrain () -> None:

	"""constrain keeps a wave inside 0..1."""

	lane = (
		_bp("wave", 0.0, 0.9, shape="square", frequency=1.0, amplitude=0.5, width=0.5, constrain="clamp"),
		_bp("end", 4.0, 0.9),
	)

	assert patchbay.animation.automate(0.25, lane) == pytest.approx(1.0)


def test_automate_random_segment () -> None:

	"""A random segment draws once per pass within value +/- amplitude."""

	lane = (_bp("random", 0.0, 0.5, amplitude=0.1), _bp("end", 4.0, 0.5))

	first = patchbay.animation.automate(1.0, lane)

	assert 0.4 <= first <= 0.6
	assert patchbay.animation.automate(3.0, lane) == first


def test_automate_random_smooth_is_bounded_and_continuous () -> None:

	"""random_smooth stays within amplitude of the ramp and moves smoothly."""

	lane = (_bp("random_smooth", 0.0, 0.5, amplitude=0.2, frequency=0.5), _bp("end", 8.0, 0.5))

	values = [patchbay.animation.automate(i * 0.01, lane) for i in range(700)]

	assert all(0.3 - 1e-9 <= v <= 0.7 + 1e-9 for v in values)
	assert max(abs(a - b) for a, b in zip(values, values[1:])) < 0.05
	assert patchbay.animation.automate(2.5, lane) == patchbay.animation.automate(2.5, lane)


# ─── State arena ──────────────────────────────────────────────────────────────


def test_state_arena_retain () -> None:

	"""retain copies only the live cells."""

	arena = patchbay.animation.StateArena()
	arena.set(("slew", 1, 0.0), 0.5)
	arena.set(("effect", "gone"), True)

	kept = arena.retain(lambda key: key[0] == "slew")

	assert kept.keys() == [("slew", 1, 0.0)]
	assert len(arena) == 2
