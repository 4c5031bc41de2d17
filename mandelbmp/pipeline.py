from __future__ import annotations

import enum
import time
from dataclasses import dataclass
from typing import Optional

from mandelbmp.bitmap import DEFAULT_DPI, BitmapEncoder, Sink
from mandelbmp.buffer import PixelBuffer, PlaneRegion
from mandelbmp.config import derive_height
from mandelbmp.renderers.cpu_threads import Precision, render_region, resolve_precision, resolve_worker_count
from mandelbmp.util.logging_setup import get_logger

class Stage(enum.Enum):
    UNINITIALIZED = "uninitialized"
    ALLOCATED = "allocated"
    FILLED = "filled"
    ENCODED = "encoded"
    PERSISTED = "persisted"

@dataclass(frozen=True)
class RenderOutcome:
    path: str
    width: int
    height: int
    max_iterations: int
    workers: int
    precision_digits: Optional[int]
    bytes_written: int
    elapsed_seconds: float
    stage: Stage

def render(
    region: PlaneRegion,
    width: int,
    height: int,
    max_iterations: int,
    *,
    workers: Optional[int] = None,
    precision: Precision = None,
    progress: bool = False,
) -> PixelBuffer:
    return render_region(
        region, width, height, max_iterations,
        workers=workers, precision=precision, progress=progress,
    )

def encode(buffer: PixelBuffer, sink: Sink, dpi: int = DEFAULT_DPI) -> int:
    return BitmapEncoder(buffer.width, buffer.height, dpi=dpi).write(buffer, sink)

def render_to_file(
    region: PlaneRegion,
    width: int,
    max_iterations: int,
    path: Sink,
    *,
    height: Optional[int] = None,
    workers: Optional[int] = None,
    precision: Precision = None,
    dpi: int = DEFAULT_DPI,
    progress: bool = False,
) -> RenderOutcome:
    """
    Allocate, fill, encode and persist one image. Stages only move forward;
    a failure in any of them is logged with the stage reached and re-raised.
    """
    logger = get_logger()
    start = time.time()
    stage = Stage.UNINITIALIZED
    if height is None:
        height = derive_height(region, width)

    workers = resolve_worker_count(workers)
    digits = resolve_precision(precision, region, width, height)

    try:
        buffer = PixelBuffer(width, height)
        stage = Stage.ALLOCATED
        render_region(
            region, width, height, max_iterations,
            buffer=buffer, workers=workers, precision=digits, progress=progress,
        )
        stage = Stage.FILLED
        encoder = BitmapEncoder(width, height, dpi=dpi)
        stage = Stage.ENCODED
        written = encoder.write(buffer, path)
        stage = Stage.PERSISTED
    except Exception:
        logger.exception("Render to %s failed after stage %s", path, stage.value)
        raise

    elapsed = time.time() - start
    logger.info("Render complete %sx%s -> %s in %.2fs", width, height, path, elapsed)
    return RenderOutcome(
        path=str(path),
        width=width,
        height=height,
        max_iterations=max_iterations,
        workers=workers,
        precision_digits=digits,
        bytes_written=written,
        elapsed_seconds=elapsed,
        stage=stage,
    )
