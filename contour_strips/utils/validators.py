"""YAML schema validation and config loading.

Provides centralized validation for the tracer configuration using pydantic:
    - Contour schema (contour.v1.yaml): thresholds, cutoffs, block size,
      coordinate width, optimisation and rescale options

All entry points load configs through these validators for fail-fast error
detection with actionable messages (offending keys, expected ranges).
The validated model is frozen: one value is shared read-only by every
stage of a frame.

Units:
    - Distances: pixels
    - Angles: cosine of the angle (dot product of unit vectors), [-1, 1]
    - Grey levels: 0..255

Usage:
    from contour_strips.utils import validators

    cfg = validators.load_contour_config("configs/contour_v1.yaml")
    cfg = validators.with_overrides(cfg, line_cutoff_distance=8.0)
"""

from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigError, UnsupportedCoordinateWidthError

SUPPORTED_COORDINATE_WIDTHS = (8, 16)


# ============================================================================
# CONTOUR SCHEMA V1
# ============================================================================

class RescaleTarget(BaseModel):
    """Output coordinate space for rescaled segments (pixels)."""
    model_config = ConfigDict(frozen=True)

    width: int = Field(..., gt=0, le=65536, description="Target width")
    height: int = Field(..., gt=0, le=65536, description="Target height")


class ContourConfigV1(BaseModel):
    """Tracer configuration (contour.v1.yaml schema).

    Defaults reproduce the reference tuning for 8-bit line-art playback.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    schema_version: str = Field("contour.v1", alias="schema", description="Schema version")
    grey_threshold: int = Field(
        32, ge=0, le=255,
        description="Luminance delta above which a pixel is a contour point"
    )
    cluster_cutoff_distance: float = Field(
        50.0, gt=0.0,
        description="Nearest-candidate distance treated as a jump into another sub-cluster"
    )
    line_cutoff_distance: float = Field(
        10.0, gt=0.0,
        description="Candidate distance that ends the current segment"
    )
    line_cutoff_angle: float = Field(
        0.5, ge=-1.0, le=1.0,
        description="Cosine below which a candidate deviates from the reference direction"
    )
    long_line_distance: float = Field(
        3.0, gt=0.0,
        description="Distance travelled before the reference direction is captured"
    )
    optimization_cutoff_angle: float = Field(
        0.97, ge=-1.0, le=1.0,
        description="Cosine above which consecutive segments are merged"
    )
    block_size: int = Field(8, ge=2, le=1024, description="Spatial block edge length (px)")
    coordinate_width: int = Field(8, description="Strip coordinate width in bits (8 or 16)")
    local_search: bool = Field(True, description="Restrict neighbour search to surrounding blocks")
    optimize: bool = Field(True, description="Merge collinear consecutive segments")
    min_segment_length: float = Field(
        2.0, ge=0.0,
        description="Optimizer drops segments shorter than this (px)"
    )
    rescale: Optional[RescaleTarget] = Field(None, description="Rescale segments before encoding")

    @field_validator('schema_version')
    @classmethod
    def validate_schema(cls, v: str) -> str:
        if v != "contour.v1":
            raise ValueError(f"Expected schema 'contour.v1', got '{v}'")
        return v

    @field_validator('coordinate_width')
    @classmethod
    def validate_coordinate_width(cls, v: int) -> int:
        if v not in SUPPORTED_COORDINATE_WIDTHS:
            raise ValueError(f"coordinate_width must be one of {SUPPORTED_COORDINATE_WIDTHS}, got {v}")
        return v


# ============================================================================
# PUBLIC API
# ============================================================================

def _config_error(source: str, err: ValidationError) -> ConfigError:
    """Translate a pydantic error into the package's ConfigError."""
    for detail in err.errors():
        if detail.get('loc') == ('coordinate_width',):
            return UnsupportedCoordinateWidthError(detail.get('input'))
    return ConfigError(f"Contour config validation failed at {source}: {err}")


def default_config() -> ContourConfigV1:
    """Configuration with all defaults."""
    return ContourConfigV1()


def parse_contour_config(data: Dict[str, Any], source: str = "<dict>") -> ContourConfigV1:
    """Validate a config mapping.

    Parameters
    ----------
    data : Dict[str, Any]
        Raw config (e.g. parsed YAML)
    source : str
        Label used in error messages

    Returns
    -------
    ContourConfigV1
        Validated, frozen configuration

    Raises
    ------
    UnsupportedCoordinateWidthError
        If ``coordinate_width`` is not 8 or 16
    ConfigError
        For any other validation failure
    """
    try:
        return ContourConfigV1(**data)
    except ValidationError as e:
        raise _config_error(source, e) from e


def load_contour_config(path: Union[str, Path]) -> ContourConfigV1:
    """Load and validate tracer config from YAML.

    Parameters
    ----------
    path : Union[str, Path]
        Path to contour.v1.yaml file

    Returns
    -------
    ContourConfigV1
        Validated configuration

    Raises
    ------
    ConfigError
        If the file is missing, unparsable or fails validation
    """
    from . import fs
    import yaml

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Contour config not found: {path}")

    try:
        data = fs.load_yaml(path)
    except yaml.YAMLError as e:
        raise ConfigError(str(e)) from e

    if not isinstance(data, dict):
        raise ConfigError(f"Contour config at {path} must be a mapping, got {type(data).__name__}")

    return parse_contour_config(data, source=str(path))


def with_overrides(cfg: ContourConfigV1, **changes: Any) -> ContourConfigV1:
    """Return a re-validated copy of ``cfg`` with ``changes`` applied.

    ``None`` values are ignored so CLI flags that were not given can be
    passed straight through.

    Examples
    --------
    >>> cfg = with_overrides(default_config(), line_cutoff_angle=0.8, optimize=None)
    """
    updates = {k: v for k, v in changes.items() if v is not None}
    if not updates:
        return cfg
    data = cfg.model_dump(by_alias=True)
    data.update(updates)
    return parse_contour_config(data, source="overrides")


def config_to_dict(cfg: ContourConfigV1) -> Dict[str, Any]:
    """Plain mapping in YAML field order (round-trips through load_contour_config)."""
    return cfg.model_dump(mode="json", by_alias=True)
