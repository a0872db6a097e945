import math
from typing import List


def percentile(samples: List[float], percent: float) -> float:
    if not samples:
        raise ValueError("samples must not be empty")
    if not (0 <= percent <= 100):
        raise ValueError("percent must be between 0 and 100")
    s = sorted(samples)
    n = len(s)
    if n == 1:
        return float(s[0])
    # rank using linear interpolation (0-based index)
    idx = (percent / 100.0) * (n - 1)
    lower = int(idx // 1)
    upper = int(idx // 1 + (0 if idx.is_integer() else 1))
    if upper >= n:
        return float(s[-1])
    if lower == upper:
        return float(s[lower])
    frac = idx - lower
    return float(s[lower] + frac * (s[upper] - s[lower]))


def p100(samples: List[float]) -> float:
    return percentile(samples, 100.0)


def round_to_multiple(n: float, multiple: int) -> int:
    """Round away from zero to a multiple of `multiple`.

    Positive values round up, negative values round down, and zero maps to
    `multiple` so a reservation of 0 is never proposed.
    """
    if multiple <= 0:
        raise ValueError("multiple must be positive")
    if not math.isfinite(n):
        raise ValueError("n must be finite")
    if n > 0:
        return math.ceil(n / multiple) * multiple
    elif n < 0:
        return math.floor(n / multiple) * multiple
    return multiple
