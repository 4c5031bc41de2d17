# precision.py

from mpmath import mp, log10

from mandelbmp.util.logging_setup import get_logger

MIN_DIGITS = 30
GUARD_DIGITS = 20

def working_digits(region) -> int:
    """
    Digits that hold every bound of `region` as written, so spans narrower
    than the default mp.dps do not collapse to zero when converted.
    """
    return max(len(str(b)) for b in region.bounds()) + GUARD_DIGITS

def digits_for_region(region, width: int, height: int) -> int:
    """
    Decimal digits needed to resolve one pixel step of `region` at
    width x height, plus the integer digits of the largest bound and
    guard digits for the iteration itself.
    """
    with mp.workdps(working_digits(region)):
        x_min, x_max, y_min, y_max = region.arbitrary()
        step = min((x_max - x_min) / width, (y_max - y_min) / height)
        if step <= 0:
            raise ValueError("region span must be positive")
        magnitude = max(abs(b) for b in (x_min, x_max, y_min, y_max))
        digits = int(-log10(step)) + GUARD_DIGITS
        if magnitude >= 1:
            digits += int(log10(magnitude)) + 1
    return max(digits, MIN_DIGITS)

def working_precision(digits: int):
    """Context manager running its body at `digits` decimal places."""
    if digits <= 0:
        raise ValueError("precision digits must be positive")
    get_logger().debug("Precision set to %s decimal places", digits)
    return mp.workdps(int(digits))
