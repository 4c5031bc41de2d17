import json
import os
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict

@dataclass(frozen=True)
class RunManifest:
    """What was rendered, how, and the header that ended up on disk."""

    created_utc: str
    region: Dict[str, str]
    image: Dict[str, Any]
    render: Dict[str, Any]
    header: Dict[str, int]

def _utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def build_manifest(*, region, outcome, dpi: int, header) -> RunManifest:
    # Bounds are kept as text so deep-zoom coordinates survive the round trip.
    names = ("x_min", "x_max", "y_min", "y_max")
    digits = outcome.precision_digits
    return RunManifest(
        created_utc=_utc_iso(),
        region={name: str(bound) for name, bound in zip(names, region.bounds())},
        image={
            "path": outcome.path,
            "width": outcome.width,
            "height": outcome.height,
            "dpi": dpi,
            "bytes_written": outcome.bytes_written,
        },
        render={
            "max_iterations": outcome.max_iterations,
            "workers": outcome.workers,
            "precision": "longdouble" if digits is None else "mpmath",
            "precision_digits": digits,
            "elapsed_seconds": round(outcome.elapsed_seconds, 3),
            "stage": outcome.stage.value,
        },
        header=asdict(header),
    )

def write_manifest(path: str, manifest: RunManifest) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(manifest), f, indent=2, sort_keys=True)
