"""Circular arithmetic on compass headings.

All headings are in degrees. Anything that averages or smooths headings
must go through ``shortest_delta`` so that the 359/1 boundary is crossed
along the short path instead of the long way around.
"""

FULL_TURN = 360.0
HALF_TURN = 180.0


def normalize(angle: float) -> float:
    """Wrap an angle into [0, 360).

    Args:
        angle: Angle in degrees, any sign or magnitude.

    Returns:
        Equivalent angle in [0, 360).
    """
    return ((angle % FULL_TURN) + FULL_TURN) % FULL_TURN


def shortest_delta(a: float, b: float) -> float:
    """Signed shortest angular path from ``b`` to ``a``.

    Args:
        a: Target angle in degrees.
        b: Origin angle in degrees.

    Returns:
        Difference in (-180, 180]. Opposite directions give +180.
    """
    delta = ((a - b + 540.0) % FULL_TURN) - HALF_TURN
    if delta <= -HALF_TURN:
        return HALF_TURN
    return delta


def circular_blend(previous: float, raw: float, alpha: float) -> float:
    """Exponential low-pass step on the circle.

    Args:
        previous: Last filtered heading in degrees.
        raw: New raw heading in degrees.
        alpha: Gain in [0, 1]. Smaller is smoother and lags more.

    Returns:
        Filtered heading in [0, 360).
    """
    return normalize(previous + shortest_delta(raw, previous) * alpha)
