from __future__ import annotations

import os
from contextlib import nullcontext
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from mandelbmp.buffer import PixelBuffer, PlaneRegion
from mandelbmp.color import color_for, color_row
from mandelbmp.renderers.escape_time import escape_time_mp, escape_time_row
from mandelbmp.util.logging_setup import get_logger
from mandelbmp.util.precision import digits_for_region, working_precision

RowRange = Tuple[int, int]
Precision = Union[None, int, str]

def resolve_worker_count(requested: Optional[int] = None) -> int:
    if requested is not None:
        return max(1, int(requested))
    count = os.cpu_count()
    if not count or count < 1:
        get_logger().warning("Host reported no available CPUs, falling back to a single worker")
        return 1
    return count

def partition_rows(height: int, workers: int) -> List[RowRange]:
    """
    Split [0, height) into max(1, workers) contiguous ranges. Every range
    but the last holds height // k rows; the last one takes the remainder.
    """
    if height < 0:
        raise ValueError("height must be non-negative")
    k = max(1, int(workers))
    rows_per_worker = height // k
    ranges: List[RowRange] = []
    for i in range(k):
        start = i * rows_per_worker
        stop = height if i == k - 1 else start + rows_per_worker
        ranges.append((start, stop))
    return ranges

def run_partitioned(
    task: Callable[[int, int], None],
    height: int,
    workers: Optional[int] = None,
    *,
    progress: bool = False,
    desc: str = "rows",
) -> List[RowRange]:
    """
    Run task(start, stop) over a row partition of [0, height) on a thread
    pool and block until every range has finished. The first exception
    raised by a worker is re-raised here, after the barrier.
    """
    k = resolve_worker_count(workers)
    ranges = [r for r in partition_rows(height, k) if r[1] > r[0]]
    if not ranges:
        return []

    with ThreadPoolExecutor(max_workers=k, thread_name_prefix="mandelbmp") as pool:
        futures = {pool.submit(task, start, stop): (start, stop) for start, stop in ranges}
        with tqdm(total=height, desc=desc, unit="row", disable=not progress) as bar:
            pending = set(futures)
            while pending:
                done, pending = wait(pending, return_when=FIRST_EXCEPTION)
                for fut in done:
                    start, stop = futures[fut]
                    fut.result()
                    bar.update(stop - start)
    return ranges

def _render_band_native(buffer: PixelBuffer, region: PlaneRegion, width: int, height: int, max_iter: int):
    x_min, x_max, y_min, y_max = region.native()
    x_step = (x_max - x_min) / np.longdouble(width)
    y_step = (y_max - y_min) / np.longdouble(height)
    xs = x_min + np.arange(width, dtype=np.longdouble) * x_step

    def band(y0: int, y1: int) -> None:
        out = buffer.rows(y0, y1)
        for yi, y in enumerate(range(y0, y1)):
            cy = y_min + np.longdouble(y) * y_step
            out[yi] = color_row(escape_time_row(xs, cy, max_iter), max_iter)
        get_logger().debug("Rendered rows %s..%s", y0, y1)

    return band

def _render_band_mp(buffer: PixelBuffer, region: PlaneRegion, width: int, height: int, max_iter: int):
    x_min, x_max, y_min, y_max = region.arbitrary()
    x_step = (x_max - x_min) / width
    y_step = (y_max - y_min) / height

    def band(y0: int, y1: int) -> None:
        out = buffer.rows(y0, y1)
        for yi, y in enumerate(range(y0, y1)):
            cy = y_min + y * y_step
            for x in range(width):
                n = escape_time_mp(x_min + x * x_step, cy, max_iter)
                out[yi, x] = color_for(n, max_iter)
        get_logger().debug("Rendered rows %s..%s (mpmath)", y0, y1)

    return band

def resolve_precision(precision: Precision, region: PlaneRegion, width: int, height: int) -> Optional[int]:
    """None selects the longdouble path, otherwise the mpmath digit count."""
    if precision is None:
        return None
    if precision == "auto":
        return digits_for_region(region, width, height)
    digits = int(precision)
    if digits <= 0:
        raise ValueError("precision digits must be positive")
    return digits

def render_region(
    region: PlaneRegion,
    width: int,
    height: int,
    max_iterations: int,
    *,
    buffer: Optional[PixelBuffer] = None,
    workers: Optional[int] = None,
    precision: Precision = None,
    progress: bool = False,
) -> PixelBuffer:
    logger = get_logger()
    if max_iterations <= 0:
        raise ValueError("max_iterations must be positive")
    if buffer is None:
        buffer = PixelBuffer(width, height)
    elif (buffer.width, buffer.height) != (width, height):
        raise ValueError(
            f"Buffer is {buffer.width}x{buffer.height}, expected {width}x{height}"
        )

    digits = resolve_precision(precision, region, width, height)
    k = resolve_worker_count(workers)
    # mp.dps is process-wide; it only changes for the duration of this render.
    with nullcontext() if digits is None else working_precision(digits):
        if digits is None:
            band = _render_band_native(buffer, region, width, height, max_iterations)
            mode = "longdouble"
        else:
            band = _render_band_mp(buffer, region, width, height, max_iterations)
            mode = f"mpmath dps={digits}"

        logger.info("CPU render start size=%sx%s iter=%s workers=%s mode=%s",
                    width, height, max_iterations, k, mode)
        run_partitioned(band, height, k, progress=progress)
    logger.info("CPU render done size=%sx%s", width, height)
    return buffer
