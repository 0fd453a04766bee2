"""Test YAML schema validation and config loading.

Tests for contour_strips.utils.validators:
    - Defaults match the shipped configs/contour_v1.yaml
    - Out-of-range values are rejected with the offending key
    - Unsupported coordinate widths get their own error
    - CLI-style overrides skip None values and re-validate

Run:
    pytest tests/test_validators.py -v
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from contour_strips.errors import ConfigError, UnsupportedCoordinateWidthError
from contour_strips.utils import validators

CONFIG_PATH = Path(__file__).resolve().parent.parent / "configs" / "contour_v1.yaml"


def test_defaults():
    cfg = validators.default_config()
    assert cfg.grey_threshold == 32
    assert cfg.cluster_cutoff_distance == 50.0
    assert cfg.line_cutoff_distance == 10.0
    assert cfg.line_cutoff_angle == 0.5
    assert cfg.long_line_distance == 3.0
    assert cfg.optimization_cutoff_angle == 0.97
    assert cfg.coordinate_width == 8
    assert cfg.local_search is True
    assert cfg.rescale is None


def test_shipped_config_matches_defaults():
    assert validators.load_contour_config(CONFIG_PATH) == validators.default_config()


def test_config_is_frozen():
    cfg = validators.default_config()
    with pytest.raises(Exception):
        cfg.grey_threshold = 10


@pytest.mark.parametrize("key,value", [
    ("grey_threshold", 256),
    ("line_cutoff_distance", 0.0),
    ("line_cutoff_angle", 1.5),
    ("block_size", 1),
    ("unknown_key", 1),
])
def test_invalid_values_rejected(key, value):
    with pytest.raises(ConfigError, match=key):
        validators.parse_contour_config({key: value})


def test_wrong_schema_version():
    with pytest.raises(ConfigError, match="contour.v1"):
        validators.parse_contour_config({"schema": "contour.v2"})


def test_unsupported_coordinate_width():
    with pytest.raises(UnsupportedCoordinateWidthError) as exc_info:
        validators.parse_contour_config({"coordinate_width": 12})
    assert exc_info.value.width == 12


def test_validation_error_is_chained():
    with pytest.raises(ConfigError, match="<dict>") as exc_info:
        validators.parse_contour_config({"grey_threshold": 300})
    assert isinstance(exc_info.value.__cause__, ValidationError)

    with pytest.raises(UnsupportedCoordinateWidthError) as exc_info:
        validators.parse_contour_config({"coordinate_width": 12}, source="cli")
    assert isinstance(exc_info.value.__cause__, ValidationError)


def test_rescale_section(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("schema: contour.v1\nrescale:\n  width: 255\n  height: 191\n")
    cfg = validators.load_contour_config(path)
    assert (cfg.rescale.width, cfg.rescale.height) == (255, 191)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        validators.load_contour_config(tmp_path / "missing.yaml")


def test_non_mapping_file(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigError, match="mapping"):
        validators.load_contour_config(path)


def test_unparsable_file(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("grey_threshold: [1, 2\n")
    with pytest.raises(ConfigError):
        validators.load_contour_config(path)


def test_with_overrides():
    base = validators.default_config()
    assert validators.with_overrides(base, optimize=None) is base

    cfg = validators.with_overrides(base, line_cutoff_distance=8.0, optimize=False, local_search=None)
    assert cfg.line_cutoff_distance == 8.0
    assert cfg.optimize is False
    assert cfg.local_search is True
    assert base.line_cutoff_distance == 10.0


def test_with_overrides_revalidates():
    with pytest.raises(ConfigError, match="optimization_cutoff_angle"):
        validators.with_overrides(validators.default_config(), optimization_cutoff_angle=-2.0)


def test_config_to_dict_round_trip(tmp_path):
    from contour_strips.utils import fs

    cfg = validators.with_overrides(validators.default_config(), rescale={"width": 10, "height": 20})
    path = tmp_path / "saved.yaml"
    fs.atomic_yaml_dump(validators.config_to_dict(cfg), path)
    assert validators.load_contour_config(path) == cfg
