from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Optional

from mpmath import mpf

from mandelbmp.bitmap import read_header
from mandelbmp.buffer import PlaneRegion
from mandelbmp.config import derive_height, load_config, normalise_config, validate_region
from mandelbmp.errors import MandelbmpError
from mandelbmp.pipeline import render_to_file
from mandelbmp.util.logging_setup import configure_root_logging, get_logger, reset_logging
from mandelbmp.util.manifest import build_manifest, write_manifest

def _coordinate(value: str) -> str:
    # Kept as text so each precision mode parses it at full width.
    try:
        mpf(value)
    except (ValueError, TypeError):
        raise argparse.ArgumentTypeError(f"not a number: {value!r}")
    return value

def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="mandelbmp", description="Render a Mandelbrot region to a 24-bit BMP file.")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON. If omitted, built-in defaults are used.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG","INFO","WARNING","ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="render.log", help="Log file path (rotating). Set empty to disable file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Render a region of the complex plane to a BMP file.")
    r.add_argument("x1", type=_coordinate, help="Minimum real coordinate.")
    r.add_argument("x2", type=_coordinate, help="Maximum real coordinate.")
    r.add_argument("y1", type=_coordinate, help="Minimum imaginary coordinate.")
    r.add_argument("y2", type=_coordinate, help="Maximum imaginary coordinate.")
    r.add_argument("filename", type=str, help="Output BMP path.")
    r.add_argument("--width", type=int, default=None, help="Image width in pixels (defaults to config.width).")
    r.add_argument("--max-iter", type=int, default=None, help="Iteration bound (defaults to config.max_iter).")
    r.add_argument("--workers", type=int, default=None, help="Worker threads (defaults to the host CPU count).")
    r.add_argument("--precision", type=str, default=None,
                   help="'native' for long double, 'auto' or a digit count for mpmath.")
    r.add_argument("--dpi", type=int, default=None, help="Resolution recorded in the header (defaults to config.dpi).")
    r.add_argument("--progress", action="store_true", help="Show a progress bar while rendering.")
    r.add_argument("--manifest", type=str, default=None, help="Write a JSON run manifest to this path.")

    i = sub.add_parser("inspect", help="Print the decoded header of a BMP file.")
    i.add_argument("filename", type=str, help="BMP file to inspect.")

    return p

def _run_render(args: argparse.Namespace, cfg: dict) -> int:
    logger = get_logger()
    for key, attr in (("width", "width"), ("max_iter", "max_iter"), ("workers", "workers"),
                      ("precision", "precision"), ("dpi", "dpi")):
        value = getattr(args, attr)
        if value is not None:
            cfg[key] = value
    cfg["region"] = [args.x1, args.x2, args.y1, args.y2]
    cfg = normalise_config(cfg)

    region = validate_region(PlaneRegion(args.x1, args.x2, args.y1, args.y2))
    height = derive_height(region, cfg["width"])

    outcome = render_to_file(
        region, cfg["width"], cfg["max_iter"], args.filename,
        height=height, workers=cfg["workers"], precision=cfg["precision"],
        dpi=cfg["dpi"], progress=args.progress,
    )
    logger.info("Mandelbrot set generated and saved to %s", outcome.path)

    if args.manifest:
        header = read_header(outcome.path)
        manifest = build_manifest(region=region, outcome=outcome, dpi=cfg["dpi"], header=header)
        write_manifest(args.manifest, manifest)
        logger.info("Run manifest written: %s", args.manifest)
    return 0

def _run_inspect(args: argparse.Namespace) -> int:
    header = read_header(args.filename)
    print(json.dumps(asdict(header), indent=2))
    return 0

def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    configure_root_logging(level=log_level, console=True, log_file=log_file)
    logger = get_logger()

    try:
        if args.cmd == "render":
            return _run_render(args, load_config(args.config))
        if args.cmd == "inspect":
            return _run_inspect(args)
        raise RuntimeError("Unknown command.")
    except (MandelbmpError, ValueError, OSError) as e:
        logger.error("%s", e)
        return 1
    finally:
        reset_logging()
