"""Atomic filesystem operations, image loading and YAML handling.

Provides:
    - Atomic writes: sibling tmp file, fsync, rename over the target
    - Grey image loading (any Pillow format → uint8 luminance array)
    - Preview image saving via Pillow
    - YAML load/save

A playback tool watching the output directory never sees a half-written
strip stream or preview: every writer goes through _atomic_target().

Usage:
    from contour_strips.utils import fs
    grey = fs.load_grey_image("frames/images12.png")
    fs.atomic_write_bytes("out/player_strips.db", stream)
    fs.atomic_save_image(preview_rgb, "out/images12.png")
"""

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Union

import numpy as np
import yaml
from PIL import Image

PathLike = Union[str, Path]


def ensure_dir(p: PathLike) -> Path:
    """Create ``p`` (and parents) when missing; returns it as a Path."""
    p = Path(p)
    p.mkdir(parents=True, exist_ok=True)
    return p


@contextmanager
def _atomic_target(path: Path, tmp_path: Path) -> Iterator[Path]:
    """Yield ``tmp_path`` for writing, then move it over ``path``.

    The tmp file lives in the target's directory so the final rename stays
    on one filesystem. On any failure it is removed and a RuntimeError
    naming ``path`` is raised.
    """
    ensure_dir(path.parent)
    try:
        yield tmp_path
        tmp_path.replace(path)
    except Exception as e:
        if tmp_path.is_file():
            tmp_path.unlink()
        raise RuntimeError(f"Failed to write {path} atomically: {e}") from e


def atomic_write_bytes(path: PathLike, data: bytes, tmp_suffix: str = ".tmp") -> None:
    """Write bytes to a file atomically.

    Parameters
    ----------
    path : Union[str, Path]
        Target file path
    data : bytes
        Complete file content
    tmp_suffix : str
        Appended to the target name for the staging file, default ".tmp"

    Raises
    ------
    RuntimeError
        If the write or rename fails
    """
    path = Path(path)
    with _atomic_target(path, path.with_name(path.name + tmp_suffix)) as tmp:
        with open(tmp, 'wb') as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())


def atomic_write_text(path: PathLike, text: str, encoding: str = "utf-8") -> None:
    atomic_write_bytes(path, text.encode(encoding))


def read_bytes(path: PathLike) -> bytes:
    """Read a whole binary file; FileNotFoundError when absent."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return path.read_bytes()


def load_grey_image(path: PathLike) -> np.ndarray:
    """Load an image as 8-bit luminance.

    Parameters
    ----------
    path : Union[str, Path]
        Image file (PNG, JPEG, ... anything Pillow decodes)

    Returns
    -------
    np.ndarray
        Grey image, shape (H, W), dtype uint8

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    RuntimeError
        If Pillow cannot decode the file

    Notes
    -----
    Pillow's "L" conversion uses the ITU-R 601-2 luma transform
    (0.299 R + 0.587 G + 0.114 B). Alpha is discarded.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {path}")

    try:
        with Image.open(path) as img:
            return np.asarray(img.convert('L'), dtype=np.uint8).copy()
    except OSError as e:
        raise RuntimeError(f"Failed to decode image {path}: {e}") from e


def _to_uint8(img: np.ndarray) -> np.ndarray:
    if img.dtype != np.uint8:
        img = np.clip(img, 0, 255).astype(np.uint8)
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    return img


def atomic_save_image(
    img: np.ndarray,
    path: PathLike,
    pil_kwargs: Optional[Dict[str, Any]] = None,
) -> None:
    """Save an RGB (H, W, 3) or grey (H, W) array atomically.

    Non-uint8 input is clipped to [0, 255]. The format follows the target
    extension; ``pil_kwargs`` go to ``PIL.Image.save``.
    """
    path = Path(path)
    pil_img = Image.fromarray(_to_uint8(np.asarray(img)))
    # Real extension last so Pillow still recognises the format
    staging = path.with_name(f"{path.stem}.tmp{path.suffix}")
    with _atomic_target(path, staging) as tmp:
        pil_img.save(tmp, **(pil_kwargs or {}))


def atomic_yaml_dump(obj: Any, path: PathLike) -> None:
    """Dump ``obj`` with yaml.safe_dump, keeping key order."""
    text = yaml.safe_dump(obj, default_flow_style=False, sort_keys=False, allow_unicode=True)
    atomic_write_text(path, text)


def load_yaml(path: PathLike) -> Dict[str, Any]:
    """Load a YAML mapping (empty file → {}).

    Raises
    ------
    FileNotFoundError
        If the file doesn't exist
    yaml.YAMLError
        If parsing fails
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"YAML file not found: {path}")

    try:
        return yaml.safe_load(path.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Failed to parse YAML file {path}: {e}") from e
