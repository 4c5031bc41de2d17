import json
from typing import Any, Dict, Optional

from mpmath import isfinite, mp, mpf, nint

from mandelbmp.buffer import PlaneRegion
from mandelbmp.errors import InvalidRegionError
from mandelbmp.util.precision import GUARD_DIGITS, working_digits

DEFAULTS: Dict[str, Any] = {
    "width": 450,
    "max_iter": 100,
    "dpi": 72,
    "workers": None,
    "precision": None,
}

def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if not config_path:
        return dict(DEFAULTS)
    with open(config_path, "r", encoding="utf-8") as f:
        cfg = json.load(f)
    if not isinstance(cfg, dict):
        raise ValueError("Config JSON must be an object.")
    out = dict(DEFAULTS)
    out.update(cfg)
    return out

def _normalise_precision(value: Any) -> Any:
    if value is None or value == "auto":
        return value
    if isinstance(value, str) and value.strip().lower() == "native":
        return None
    digits = int(value)
    if digits <= 0:
        raise ValueError("precision must be 'auto', 'native' or a positive digit count.")
    return digits

def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    required = ["width", "max_iter"]
    for r in required:
        if r not in cfg:
            raise ValueError(f"Missing config field: {r}")

    width = int(cfg["width"])
    max_iter = int(cfg["max_iter"])
    dpi = int(cfg.get("dpi", DEFAULTS["dpi"]))
    if width <= 0 or max_iter <= 0 or dpi <= 0:
        raise ValueError("width/max_iter/dpi must be positive.")

    workers = cfg.get("workers")
    if workers is not None:
        workers = int(workers)
        if workers < 0:
            raise ValueError("workers must be >= 0 (0 means one worker).")

    out = dict(cfg)
    out["width"] = width
    out["max_iter"] = max_iter
    out["dpi"] = dpi
    out["workers"] = workers
    out["precision"] = _normalise_precision(cfg.get("precision"))

    region = cfg.get("region")
    if region is not None:
        if not (isinstance(region, (list, tuple)) and len(region) == 4):
            raise ValueError("region must be [x_min, x_max, y_min, y_max].")
        out["region"] = list(region)
        validate_region(region_from_config(out))
    return out

def region_from_config(cfg: Dict[str, Any]) -> PlaneRegion:
    x_min, x_max, y_min, y_max = cfg["region"]
    return PlaneRegion(x_min, x_max, y_min, y_max)

def _exact_bounds(region: PlaneRegion):
    bounds = region.arbitrary()
    if not all(isfinite(b) for b in bounds):
        raise InvalidRegionError("Invalid coordinates: bounds must be finite numbers")
    return bounds

def validate_region(region: PlaneRegion) -> PlaneRegion:
    with mp.workdps(working_digits(region)):
        x_min, x_max, y_min, y_max = _exact_bounds(region)
        if x_min >= x_max or y_min >= y_max:
            raise InvalidRegionError(
                "Invalid coordinates: x1 must be less than x2 and y1 must be less than y2"
            )
    return region

def derive_height(region: PlaneRegion, width: int) -> int:
    """Image height that keeps the region's aspect ratio at `width` pixels."""
    with mp.workdps(working_digits(region)):
        x_min, x_max, y_min, y_max = _exact_bounds(region)
        if x_max == x_min:
            raise InvalidRegionError("Invalid coordinates: x1 and x2 must differ")
        # Multiply before dividing so exact ratios (2 / 3 * 450) stay integral.
        ratio = abs((y_max - y_min) * width / (x_max - x_min))
        # Decimal bounds are not exact in binary; snap rounding noise.
        nearest = nint(ratio)
        if abs(ratio - nearest) < mpf(10) ** -GUARD_DIGITS:
            ratio = nearest
        height = int(ratio)
    if height < 1:
        raise ValueError(f"Region is too flat for width {width}: derived height is 0")
    return height
