"""Signal transforms used as steps of a ``mod`` route.

The free functions are pure.  :func:`apply` dispatches a configured effect
(with every parameter already resolved to a float) and keeps the two
stateful effects, hysteresis and the slew limiter, in the hub's state
arena under ``("effect", name)``.
"""

import math
import typing

import patchbay.config
import patchbay.easing

if typing.TYPE_CHECKING:
	import patchbay.animation


def safe_range (low: float, high: float) -> patchbay.config.Range:
	return (low, high) if low <= high else (high, low)


# ─── Constrain ────────────────────────────────────────────────────────────────


def clamp (value: float, low: float, high: float) -> float:
	return max(low, min(high, value))


def fold (value: float, low: float, high: float) -> float:

	"""Mirror overshoot back into range: ``fold(1.2, 0, 1) == 0.8``."""

	if low == high:
		return low

	span = high - low
	period = span * 2.0
	offset = (value - low) % period

	return low + (offset if offset <= span else period - offset)


def wrap (value: float, low: float, high: float) -> float:

	"""Wrap overshoot around to the other end: ``wrap(1.2, 0, 1) == 0.2``."""

	if low == high:
		return low

	if value == high:
		return high

	span = high - low
	offset = value - low

	return low + (offset - math.floor(offset / span) * span)


def constrain (value: float, mode: str, value_range: patchbay.config.Range) -> float:

	low, high = safe_range(*value_range)

	if mode == "clamp":
		return clamp(value, low, high)

	if mode == "fold":
		return fold(value, low, high)

	if mode == "wrap":
		return wrap(value, low, high)

	return value


# ─── Pure effects ─────────────────────────────────────────────────────────────


def map_range (value: float, domain: patchbay.config.Range, value_range: patchbay.config.Range) -> float:
	return patchbay.easing.map_value(value, domain[0], domain[1], value_range[0], value_range[1])


def math_op (value: float, operator: str, operand: float) -> float:

	if operator == "mult":
		return value * operand

	if operator == "curve":
		return patchbay.easing.curve(value, operand)

	return value + operand


def quantize (value: float, step: float, value_range: patchbay.config.Range) -> float:

	low, high = value_range

	if step <= 0.0:
		return clamp(value, low, high)

	steps = value / step
	steps = math.copysign(math.floor(abs(steps) + 0.5), steps)

	return clamp(steps * step, low, high)


def ring_modulate (carrier: float, modulator: float, mix: float, value_range: patchbay.config.Range) -> float:

	"""
	Multiply carrier and modulator around the midpoint of *value_range*.

	*mix* crossfades carrier (0) -> ring product (0.5) -> modulator (1).
	"""

	low, high = value_range
	mid = low + (high - low) / 2.0

	c = (carrier - mid) * 2.0
	m = (modulator - mid) * 2.0
	ring = c * m

	if mix <= 0.5:
		t = mix * 2.0
		result = c * (1.0 - t) + ring * t
	else:
		t = (mix - 0.5) * 2.0
		result = ring * (1.0 - t) + m * t

	return clamp(result / 2.0 + mid, low, high)


def saturate (value: float, drive: float, value_range: patchbay.config.Range) -> float:

	"""
	Soft-clip with tanh around the midpoint of *value_range*.

	Drive 0 passes through; drives below 1 blend toward plain tanh.
	"""

	if drive == 0.0:
		return value

	low, high = value_range
	span = high - low

	if span == 0.0:
		return low

	mid = low + span / 2.0
	normalized = 2.0 * (value - mid) / span

	if drive < 1.0:
		amount = patchbay.easing.ease_out_expo(drive)
		saturated = normalized * (1.0 - amount) + math.tanh(normalized) * amount
	else:
		saturated = math.tanh(normalized * drive)

	return saturated * (span / 2.0) + mid


def _fold_once (value: float, gain: float, symmetry: float, bias: float, shape: float, value_range: patchbay.config.Range) -> float:

	if gain < 1.0:
		return value

	low, high = value_range
	half = (high - low) / 2.0

	if half == 0.0:
		return low

	mid = low + half
	normalized = (value - mid) * gain / half
	biased = normalized + bias

	if symmetry == 0.0:
		asymmetric = biased
	elif normalized > 0.0:
		asymmetric = biased * symmetry
	else:
		asymmetric = biased / symmetry

	magnitude = abs(asymmetric)
	sign = math.copysign(1.0, asymmetric) if asymmetric else 0.0
	cycles = int(math.floor(magnitude))
	remainder = magnitude - cycles

	folded = (remainder if cycles % 2 == 0 else 1.0 - remainder) * sign

	if shape < 0.0:
		sine = math.sin(folded * math.pi / 2.0)
		if shape < -1.0:
			intensity = min(-shape, 2.0)
			extra = math.sin(folded * math.pi * intensity)
			folded = sine * (2.0 - intensity) + extra * (intensity - 1.0)
		else:
			folded = folded * (1.0 + shape) + sine * -shape

	elif shape > 0.0:
		folded = abs(folded) ** (1.0 + shape) * math.copysign(1.0, folded)

	return folded * half + mid


def wave_fold (
	value: float,
	gain: float = 1.0,
	iterations: int = 1,
	symmetry: float = 1.0,
	bias: float = 0.0,
	shape: float = 0.0,
	value_range: patchbay.config.Range = (0.0, 1.0)
) -> float:

	"""
	Reflect the signal back into range each time it crosses an edge.

	*gain* below 1 disables folding.  *shape* below 0 rounds folds toward a
	sine, above 0 sharpens them.
	"""

	for _ in range(iterations):
		value = _fold_once(value, gain, symmetry, bias, shape, value_range)

	return value


def slew (previous: float, value: float, rise: float, fall: float) -> float:

	"""One step of a one-pole slew limiter; rates 0 are instant and 1 frozen."""

	rate = rise if value > previous else fall
	coeff = 1.0 - patchbay.easing.ease_in_out_expo(clamp(rate, 0.0, 1.0))

	return previous + coeff * (value - previous)


# ─── Stateful effects ─────────────────────────────────────────────────────────


def hysteresis (
	value: float,
	high: bool,
	lower_threshold: float = 0.3,
	upper_threshold: float = 0.7,
	output_low: float = 0.0,
	output_high: float = 1.0,
	pass_through: bool = False
) -> typing.Tuple[float, bool]:

	"""
	Schmitt trigger.  Returns ``(output, high)`` where *high* is the new state.

	Between the thresholds the state is kept; with *pass_through* the input
	is returned unchanged there instead.
	"""

	lower_threshold, upper_threshold = safe_range(lower_threshold, upper_threshold)

	if value >= upper_threshold:
		high = True
	elif value <= lower_threshold:
		high = False
	elif pass_through:
		return value, high

	return (output_high if high else output_low), high


def state_key (name: str) -> typing.Tuple[str, str]:
	return ("effect", name)


def apply (
	effect: patchbay.config.Effect,
	value: float,
	state: "patchbay.animation.StateArena",
	modulator: float = 0.0
) -> float:

	"""
	Run one route step.  *modulator* is the second input of a ring modulator.
	"""

	if isinstance(effect, patchbay.config.Constrain):
		return constrain(value, effect.mode, effect.range)

	if isinstance(effect, patchbay.config.Hysteresis):
		output, high = hysteresis(
			value,
			state.get(state_key(effect.name), False),
			effect.lower_threshold,
			effect.upper_threshold,
			effect.output_low,
			effect.output_high,
			effect.pass_through,
		)
		state.set(state_key(effect.name), high)
		return output

	if isinstance(effect, patchbay.config.Map):
		return map_range(value, effect.domain, effect.range)

	if isinstance(effect, patchbay.config.Math):
		return math_op(value, effect.operator, effect.operand)

	if isinstance(effect, patchbay.config.Quantizer):
		return quantize(value, effect.step, effect.range)

	if isinstance(effect, patchbay.config.RingModulator):
		return ring_modulate(value, modulator, effect.mix, effect.range)

	if isinstance(effect, patchbay.config.Saturator):
		return saturate(value, effect.drive, effect.range)

	if isinstance(effect, patchbay.config.SlewLimiter):
		output = slew(state.get(state_key(effect.name), 0.0), value, effect.rise, effect.fall)
		state.set(state_key(effect.name), output)
		return output

	if isinstance(effect, patchbay.config.WaveFolder):
		return wave_fold(value, effect.gain, effect.iterations, effect.symmetry, effect.bias, effect.shape, effect.range)

	raise TypeError(f"Unknown effect {effect!r}")
