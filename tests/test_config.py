import json

import pytest

from mandelbmp.buffer import PlaneRegion
from mandelbmp.config import (
    DEFAULTS,
    derive_height,
    load_config,
    normalise_config,
    region_from_config,
    validate_region,
)
from mandelbmp.errors import InvalidRegionError


def test_defaults():
    cfg = normalise_config(load_config(None))
    assert cfg["width"] == 450
    assert cfg["max_iter"] == 100
    assert cfg["dpi"] == 72
    assert cfg["workers"] is None
    assert cfg["precision"] is None


def test_load_config_merges_defaults(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"width": 64, "workers": 3}), encoding="utf-8")
    cfg = normalise_config(load_config(str(path)))
    assert cfg["width"] == 64
    assert cfg["workers"] == 3
    assert cfg["max_iter"] == DEFAULTS["max_iter"]


def test_load_config_requires_object(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(path))


@pytest.mark.parametrize("field, value", [("width", 0), ("max_iter", -1), ("dpi", 0), ("workers", -1)])
def test_normalise_rejects_bad_values(field, value):
    cfg = dict(DEFAULTS)
    cfg[field] = value
    with pytest.raises(ValueError):
        normalise_config(cfg)


def test_normalise_requires_fields():
    with pytest.raises(ValueError, match="width"):
        normalise_config({"max_iter": 10})


@pytest.mark.parametrize("value, expected", [(None, None), ("native", None), ("auto", "auto"), ("12", 12), (40, 40)])
def test_precision_values(value, expected):
    cfg = dict(DEFAULTS, precision=value)
    assert normalise_config(cfg)["precision"] == expected


def test_precision_rejects_zero():
    with pytest.raises(ValueError):
        normalise_config(dict(DEFAULTS, precision=0))


def test_region_from_config():
    cfg = normalise_config(dict(DEFAULTS, region=["-2", "1", "-1", "1"]))
    assert region_from_config(cfg) == PlaneRegion("-2", "1", "-1", "1")


@pytest.mark.parametrize("bounds", [(1, -2, -1, 1), (-2, 1, 1, -1), (0, 0, -1, 1), (-2, 1, 0.5, 0.5)])
def test_invalid_region(bounds):
    with pytest.raises(InvalidRegionError):
        validate_region(PlaneRegion(*bounds))
    with pytest.raises(ValueError):
        normalise_config(dict(DEFAULTS, region=list(bounds)))


def test_region_must_have_four_bounds():
    with pytest.raises(ValueError):
        normalise_config(dict(DEFAULTS, region=[0, 1]))


def test_derive_height():
    assert derive_height(PlaneRegion(-2, 1, -1, 1), 450) == 300
    assert derive_height(PlaneRegion(-1, 1, -1, 1), 64) == 64
    assert derive_height(PlaneRegion(0, 4, 0, 1), 10) == 2


def test_derive_height_rejects_flat_region():
    with pytest.raises(ValueError):
        derive_height(PlaneRegion(0, 100, 0, 1), 10)


DEEP_BOUNDS = (
    "-0.74364388703715870475219",
    "-0.74364388703715870475210",
    "0.13182590420531197049",
    "0.13182590420531197050",
)


def test_deep_region_is_valid():
    region = PlaneRegion(*DEEP_BOUNDS)
    assert validate_region(region) is region
    assert normalise_config(dict(DEFAULTS, region=list(DEEP_BOUNDS)))["region"] == list(DEEP_BOUNDS)


def test_deep_region_height():
    # y span 1e-20 over x span 9e-23
    assert derive_height(PlaneRegion(*DEEP_BOUNDS), 9) == 1000


def test_deep_region_ordering_checked_past_longdouble():
    x_min, x_max, y_min, y_max = DEEP_BOUNDS
    with pytest.raises(InvalidRegionError):
        validate_region(PlaneRegion(x_max, x_min, y_min, y_max))


@pytest.mark.parametrize(
    "bounds",
    [
        ("-2", "1", "-1", "inf"),
        ("-inf", "1", "-1", "1"),
        ("-2", "nan", "-1", "1"),
        (-2.0, 1.0, float("-inf"), 1.0),
    ],
)
def test_non_finite_bounds_rejected(bounds):
    region = PlaneRegion(*bounds)
    with pytest.raises(InvalidRegionError, match="finite"):
        validate_region(region)
    with pytest.raises(InvalidRegionError):
        derive_height(region, 450)
