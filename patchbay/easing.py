"""Easing functions for ramps, breakpoints and transitions.

Easing functions map a normalised progress value *t* in [0, 1] to an eased
output.  Breakpoints of kind ``ramp``, ``wave`` and ``random_smooth`` name
one with their ``easing`` field:

    fade:
      type: automate
      breakpoints:
        - { kind: ramp, position: 0, value: 0, easing: ease_in_out_cubic }
        - { kind: end, position: 4, value: 1 }

Available shapes are the Penner set (``ease_in_quad`` .. ``ease_in_out_bounce``,
with ``ease_in``/``ease_out``/``ease_in_out`` as quadratic aliases), plus
``linear``, ``logarithmic``, ``s_curve`` and three parametric curves with
fixed defaults when looked up by name: ``exponential`` (t ** 2), ``curve``
(curvature 2, max exponent 5) and ``sigmoid`` (steepness 5).

All named functions satisfy f(0) = 0 and f(1) = 1 except ``sigmoid``,
which approaches them.  The ``back`` and ``elastic`` families overshoot.
"""

from __future__ import annotations

import math
import typing


C1 = 1.70158
C2 = C1 * 1.525
C3 = C1 + 1.0
C4 = (2.0 * math.pi) / 3.0
C5 = (2.0 * math.pi) / 4.5

SUGGESTED_CURVE_MAX_EXPONENT = 10.0


# ─── Polynomial ───────────────────────────────────────────────────────────────


def linear (t: float) -> float:
    """No transformation, constant rate of change."""
    return t


def ease_in_quad (t: float) -> float:
    return t * t


def ease_out_quad (t: float) -> float:
    return 1.0 - (1.0 - t) * (1.0 - t)


def ease_in_out_quad (t: float) -> float:
    if t < 0.5:
        return 2.0 * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 2 / 2.0


def ease_in_cubic (t: float) -> float:
    return t * t * t


def ease_out_cubic (t: float) -> float:
    return 1.0 - (1.0 - t) ** 3


def ease_in_out_cubic (t: float) -> float:
    if t < 0.5:
        return 4.0 * t * t * t
    return 1.0 - (-2.0 * t + 2.0) ** 3 / 2.0


def ease_in_quart (t: float) -> float:
    return t ** 4


def ease_out_quart (t: float) -> float:
    return 1.0 - (1.0 - t) ** 4


def ease_in_out_quart (t: float) -> float:
    if t < 0.5:
        return 8.0 * t ** 4
    return 1.0 - (-2.0 * t + 2.0) ** 4 / 2.0


def ease_in_quint (t: float) -> float:
    return t ** 5


def ease_out_quint (t: float) -> float:
    return 1.0 - (1.0 - t) ** 5


def ease_in_out_quint (t: float) -> float:
    if t < 0.5:
        return 16.0 * t ** 5
    return 1.0 - (-2.0 * t + 2.0) ** 5 / 2.0


# ─── Trigonometric, exponential, circular ─────────────────────────────────────


def ease_in_sine (t: float) -> float:
    return 1.0 - math.cos((t * math.pi) / 2.0)


def ease_out_sine (t: float) -> float:
    return math.sin((t * math.pi) / 2.0)


def ease_in_out_sine (t: float) -> float:
    return -(math.cos(math.pi * t) - 1.0) / 2.0


def ease_in_expo (t: float) -> float:
    return 0.0 if t == 0.0 else 2.0 ** (10.0 * t - 10.0)


def ease_out_expo (t: float) -> float:
    return 1.0 if t == 1.0 else 1.0 - 2.0 ** (-10.0 * t)


def ease_in_out_expo (t: float) -> float:

    """Exponential S-curve.

    Also drives the slew coefficient of slew limiters, where a linear
    ``slew`` knob would spend most of its travel doing very little.
    """

    if t == 0.0:
        return 0.0
    if t == 1.0:
        return 1.0
    if t < 0.5:
        return 2.0 ** (20.0 * t - 10.0) / 2.0
    return (2.0 - 2.0 ** (-20.0 * t + 10.0)) / 2.0


def ease_in_circ (t: float) -> float:
    return 1.0 - math.sqrt(max(0.0, 1.0 - t * t))


def ease_out_circ (t: float) -> float:
    return math.sqrt(max(0.0, 1.0 - (t - 1.0) ** 2))


def ease_in_out_circ (t: float) -> float:
    if t < 0.5:
        return (1.0 - math.sqrt(max(0.0, 1.0 - (2.0 * t) ** 2))) / 2.0
    return (math.sqrt(max(0.0, 1.0 - (-2.0 * t + 2.0) ** 2)) + 1.0) / 2.0


# ─── Overshooting ─────────────────────────────────────────────────────────────


def ease_in_back (t: float) -> float:
    return C3 * t * t * t - C1 * t * t


def ease_out_back (t: float) -> float:
    return 1.0 + C3 * (t - 1.0) ** 3 + C1 * (t - 1.0) ** 2


def ease_in_out_back (t: float) -> float:
    if t < 0.5:
        return ((2.0 * t) ** 2 * ((C2 + 1.0) * 2.0 * t - C2)) / 2.0
    return ((2.0 * t - 2.0) ** 2 * ((C2 + 1.0) * (t * 2.0 - 2.0) + C2) + 2.0) / 2.0


def ease_in_elastic (t: float) -> float:
    if t == 0.0 or t == 1.0:
        return t
    return -(2.0 ** (10.0 * t - 10.0)) * math.sin((t * 10.0 - 10.75) * C4)


def ease_out_elastic (t: float) -> float:
    if t == 0.0 or t == 1.0:
        return t
    return 2.0 ** (-10.0 * t) * math.sin((t * 10.0 - 0.75) * C4) + 1.0


def ease_in_out_elastic (t: float) -> float:
    if t == 0.0 or t == 1.0:
        return t
    if t < 0.5:
        return -(2.0 ** (20.0 * t - 10.0) * math.sin((20.0 * t - 11.125) * C5)) / 2.0
    return (2.0 ** (-20.0 * t + 10.0) * math.sin((20.0 * t - 11.125) * C5)) / 2.0 + 1.0


def _bounce_out (t: float) -> float:

    n1 = 7.5625
    d1 = 2.75

    if t < 1.0 / d1:
        return n1 * t * t
    if t < 2.0 / d1:
        t -= 1.5 / d1
        return n1 * t * t + 0.75
    if t < 2.5 / d1:
        t -= 2.25 / d1
        return n1 * t * t + 0.9375
    t -= 2.625 / d1
    return n1 * t * t + 0.984375


def ease_in_bounce (t: float) -> float:
    return 1.0 - _bounce_out(1.0 - t)


def ease_out_bounce (t: float) -> float:
    return _bounce_out(t)


def ease_in_out_bounce (t: float) -> float:
    if t < 0.5:
        return (1.0 - _bounce_out(1.0 - 2.0 * t)) / 2.0
    return (1.0 + _bounce_out(2.0 * t - 1.0)) / 2.0


# ─── Misc and parametric ──────────────────────────────────────────────────────


def logarithmic (t: float) -> float:
    """Rapid initial change that tapers off: ln(1 + 9t) / ln(10)."""
    return math.log(1.0 + t * 9.0) / math.log(10.0)


def s_curve (t: float) -> float:

    """Perlin smootherstep: a smoother S-curve than ease_in_out.

    Has zero first *and* second derivatives at t=0 and t=1, eliminating the
    subtle acceleration jerk at the boundaries.
    """

    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def exponential (t: float, power: float = 2.0) -> float:
    return max(0.0, t) ** power


def curve (t: float, curvature: float, max_exponent: float = SUGGESTED_CURVE_MAX_EXPONENT) -> float:

    """Symmetric exponential skew controlled by a single knob.

    ``curvature`` 0 is linear, positive values ease out (bias toward the
    top of the range) and negative values ease in (bias toward the
    bottom).  The magnitude is clamped to 1 and maps onto an exponent in
    ``[1, max_exponent]``.
    """

    if curvature == 0.0:
        return t

    t = max(0.0, min(1.0, t))
    exponent = 1.0 + min(abs(curvature), 1.0) * (max_exponent - 1.0)

    if curvature > 0.0:
        return 1.0 - (1.0 - t) ** exponent

    return t ** exponent


def sigmoid (t: float, steepness: float = 5.0) -> float:
    return 1.0 / (1.0 + math.exp(-steepness * (t - 0.5)))


# ─── Registry and lookup ──────────────────────────────────────────────────────

EasingFn = typing.Callable[[float], float]

EASING_FUNCTIONS: typing.Dict[str, EasingFn] = {
    "linear":              linear,
    "ease_in":             ease_in_quad,
    "ease_out":            ease_out_quad,
    "ease_in_out":         ease_in_out_quad,
    "ease_in_quad":        ease_in_quad,
    "ease_out_quad":       ease_out_quad,
    "ease_in_out_quad":    ease_in_out_quad,
    "ease_in_cubic":       ease_in_cubic,
    "ease_out_cubic":      ease_out_cubic,
    "ease_in_out_cubic":   ease_in_out_cubic,
    "ease_in_quart":       ease_in_quart,
    "ease_out_quart":      ease_out_quart,
    "ease_in_out_quart":   ease_in_out_quart,
    "ease_in_quint":       ease_in_quint,
    "ease_out_quint":      ease_out_quint,
    "ease_in_out_quint":   ease_in_out_quint,
    "ease_in_sine":        ease_in_sine,
    "ease_out_sine":       ease_out_sine,
    "ease_in_out_sine":    ease_in_out_sine,
    "ease_in_expo":        ease_in_expo,
    "ease_out_expo":       ease_out_expo,
    "ease_in_out_expo":    ease_in_out_expo,
    "ease_in_circ":        ease_in_circ,
    "ease_out_circ":       ease_out_circ,
    "ease_in_out_circ":    ease_in_out_circ,
    "ease_in_back":        ease_in_back,
    "ease_out_back":       ease_out_back,
    "ease_in_out_back":    ease_in_out_back,
    "ease_in_elastic":     ease_in_elastic,
    "ease_out_elastic":    ease_out_elastic,
    "ease_in_out_elastic": ease_in_out_elastic,
    "ease_in_bounce":      ease_in_bounce,
    "ease_out_bounce":     ease_out_bounce,
    "ease_in_out_bounce":  ease_in_out_bounce,
    "logarithmic":         logarithmic,
    "s_curve":             s_curve,
    "exponential":         lambda t: exponential(t, 2.0),
    "curve":               lambda t: curve(t, 2.0, 5.0),
    "sigmoid":             lambda t: sigmoid(t, 5.0),
}


def get_easing (shape: typing.Union[str, EasingFn]) -> EasingFn:
    """Return the easing function for *shape*.

    *shape* may be a name string (see :data:`EASING_FUNCTIONS`) or any
    callable that maps a float in [0, 1] to a float.

    Raises :class:`ValueError` for unknown string names.
    """
    if callable(shape):
        return shape
    if shape not in EASING_FUNCTIONS:
        available = ", ".join(f'"{k}"' for k in sorted(EASING_FUNCTIONS))
        raise ValueError(
            f"Unknown easing shape {shape!r}. Available shapes: {available}"
        )
    return EASING_FUNCTIONS[shape]


def lerp (start: float, end: float, t: float) -> float:
    return start + (end - start) * t


def map_value (
    value: float,
    in_min: float = 0.0,
    in_max: float = 1.0,
    out_min: float = 0.0,
    out_max: float = 1.0,
    shape: typing.Union[str, EasingFn] = "linear",
    clamp: bool = False
) -> float:
    """Map a value from an input range to an output range, with optional easing.

    Linearly maps *value* from ``[in_min, in_max]`` into a progress ratio,
    optionally clamps it to [0, 1], applies the easing curve and
    interpolates into ``[out_min, out_max]``.  A degenerate input range
    returns *out_min* instead of dividing by zero.

    Parameters:
        value: The raw input to scale.
        in_min: The lower bound of the input's expected range.
        in_max: The upper bound of the input's expected range.
        out_min: The lower bound of the mapped output range.
        out_max: The upper bound of the mapped output range.
        shape: The easing curve to apply to the ratio (see :func:`get_easing`).
        clamp: If True, inputs outside the input range are clamped so the
            result never leaves the output range.  Off by default so the
            ``map`` effect behaves as a plain linear transform.

    Returns:
        The mapped and eased value as a float.
    """

    if in_min == in_max:
        return out_min

    t = (value - in_min) / (in_max - in_min)

    if clamp:
        t = max(0.0, min(1.0, t))

    return out_min + (out_max - out_min) * get_easing(shape)(t)
