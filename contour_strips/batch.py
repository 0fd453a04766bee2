"""Directory-level orchestration: frames on disk → one strip stream.

Provides:
    - list_frames(): image files of a directory in natural order
    - trace_image(): load one image and run the frame pipeline
    - generate_stream(): trace many frames into a concatenated stream
    - render_stream(): decode a stream into one PNG per frame
    - write_legacy_segments() / render_legacy(): ``.seg`` file support

Frames are processed sequentially; each frame gets a ``frame=<name>``
logging context.  A failing frame never stops the batch unless
``on_error="abort"``:
    - "skip":  log it and leave the frame out of the stream
    - "empty": log it and write an empty frame (keeps playback timing)
    - "abort": re-raise

Outputs are written atomically, so a player never reads a partial stream.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from .codec import legacy
from .codec.strips import CoordinateCodec, coordinate_codec, iter_frames
from .errors import ContourError
from .rendering import raster
from .tracing.pipeline import FrameResult, process_frame
from .tracing.sampler import ArraySampler
from .utils import fs
from .utils.logging_config import pop_context, push_context
from .utils.profiler import TimerAccumulator
from .utils.validators import ContourConfigV1, default_config

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = (".png", ".jpg", ".jpeg", ".bmp", ".tif", ".tiff", ".gif")
ON_ERROR_MODES = ("skip", "empty", "abort")
EMPTY_FRAME = b"\x00"

SUMMARY_HEADER = ("filename", "segments", "strips")


@dataclass
class FrameSummary:
    """One row of the batch summary CSV."""

    filename: str
    segments: int
    strips: int


@dataclass
class BatchReport:
    """Outcome of ``generate_stream``.

    Attributes
    ----------
    frames_ok : int
        Frames traced and encoded.
    failed : List[str]
        Names of frames that failed.
    total_bytes : int
        Size of the written stream.
    rows : List[FrameSummary]
        Per-frame summary (successful frames only).
    stream_path, summary_path : Optional[Path]
        Written files.
    """

    frames_ok: int = 0
    failed: List[str] = field(default_factory=list)
    total_bytes: int = 0
    rows: List[FrameSummary] = field(default_factory=list)
    stream_path: Optional[Path] = None
    summary_path: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return not self.failed


def _natural_key(path: Path) -> Tuple:
    return tuple(int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", path.name))


def list_frames(directory: Union[str, Path]) -> List[Path]:
    """Image files in ``directory``, natural order (``f2`` before ``f10``).

    Raises
    ------
    FileNotFoundError
        If ``directory`` does not exist or is not a directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise FileNotFoundError(f"Frame directory not found: {directory}")
    frames = [p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in IMAGE_SUFFIXES]
    return sorted(frames, key=_natural_key)


def trace_image(path: Union[str, Path], config: ContourConfigV1) -> Tuple[FrameResult, bytes]:
    """Load an image file and trace/encode it.

    Raises
    ------
    FileNotFoundError
        If the image does not exist.
    RuntimeError
        If the image cannot be decoded.
    ContourError
        If the frame cannot be encoded.
    """
    grey = fs.load_grey_image(path)
    return process_frame(ArraySampler(grey), config)


def save_intermediate(result: FrameResult, out_dir: Union[str, Path], stem: str) -> Tuple[Path, Path]:
    """Write contour-point and segment previews of one frame.

    Returns
    -------
    Tuple[Path, Path]
        (``<stem>_contour.png``, ``<stem>_segments.png``)
    """
    out_dir = fs.ensure_dir(out_dir)
    contour_path = out_dir / f"{stem}_contour.png"
    segments_path = out_dir / f"{stem}_segments.png"
    fs.atomic_save_image(raster.draw_points(result.points, result.size), contour_path)
    fs.atomic_save_image(raster.draw_segments(result.segments, result.size), segments_path)
    return contour_path, segments_path


def write_summary(rows: Sequence[FrameSummary], path: Union[str, Path]) -> Path:
    """Write the per-frame CSV summary atomically."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(SUMMARY_HEADER)
    for row in rows:
        writer.writerow((row.filename, row.segments, row.strips))
    path = Path(path)
    fs.atomic_write_text(path, buf.getvalue())
    return path


def generate_stream(
    inputs: Sequence[Union[str, Path]],
    output: Union[str, Path],
    config: Optional[ContourConfigV1] = None,
    on_error: str = "skip",
    summary_path: Optional[Union[str, Path]] = None,
    intermediate_dir: Optional[Union[str, Path]] = None,
) -> BatchReport:
    """Trace ``inputs`` in order and write one concatenated strip stream.

    Parameters
    ----------
    inputs : Sequence[Union[str, Path]]
        Frame image files, in playback order.
    output : Union[str, Path]
        Stream file to write.
    config : Optional[ContourConfigV1]
        Tracer configuration (defaults when None).
    on_error : str
        "skip", "empty" or "abort" (see module docstring).
    summary_path : Optional[Union[str, Path]]
        CSV summary file; defaults to ``<output>.csv``.
    intermediate_dir : Optional[Union[str, Path]]
        When set, contour/segment previews are saved there per frame.

    Returns
    -------
    BatchReport

    Raises
    ------
    ValueError
        If ``on_error`` is not a known mode, or ``summary_path`` is the stream path.
    ContourError, FileNotFoundError, RuntimeError
        Frame failures, only with ``on_error="abort"``.
    """
    if on_error not in ON_ERROR_MODES:
        raise ValueError(f"on_error must be one of {ON_ERROR_MODES}, got {on_error!r}")
    cfg = config if config is not None else default_config()

    output = Path(output)
    summary_path = Path(summary_path) if summary_path is not None else output.with_name(output.name + ".csv")
    if summary_path.resolve() == output.resolve():
        raise ValueError(f"Summary path must differ from the stream path: {output}")
    report = BatchReport(stream_path=output, summary_path=summary_path)
    stream = bytearray()
    frame_timer = TimerAccumulator("frame")

    logger.info(f"Tracing {len(inputs)} frames -> {output}")
    for path in map(Path, inputs):
        push_context(frame=path.name)
        try:
            with frame_timer.measure():
                result, data = trace_image(path, cfg)
            if intermediate_dir is not None:
                save_intermediate(result, intermediate_dir, path.stem)
        except (ContourError, FileNotFoundError, RuntimeError) as e:
            if on_error == "abort":
                raise
            report.failed.append(path.name)
            if on_error == "empty":
                stream += EMPTY_FRAME
                logger.error(f"Frame failed, writing empty frame: {e}")
            else:
                logger.error(f"Frame failed, skipping: {e}")
            continue
        finally:
            pop_context(["frame"])

        stream += data
        report.frames_ok += 1
        report.rows.append(FrameSummary(path.name, result.stats.segments_optimized, result.stats.strips))

    fs.atomic_write_bytes(output, bytes(stream))
    write_summary(report.rows, summary_path)
    report.total_bytes = len(stream)

    logger.info(
        f"Wrote {report.total_bytes} bytes: {report.frames_ok} frames ok, "
        f"{len(report.failed)} failed, {frame_timer.mean():.3f} s/frame "
        f"(slowest {frame_timer.slowest:.3f} s)"
    )
    return report


def render_stream(
    stream_path: Union[str, Path],
    output_dir: Union[str, Path],
    size: Tuple[int, int],
    codec: Optional[CoordinateCodec] = None,
) -> List[Path]:
    """Decode a strip stream and save one PNG per frame.

    Frames are written as ``frame_00000.png``, ``frame_00001.png``, ...

    Raises
    ------
    FileNotFoundError
        If the stream file does not exist.
    DecodeError
        If the stream is truncated inside a frame.
    """
    codec = codec if codec is not None else coordinate_codec(8)
    data = fs.read_bytes(stream_path)
    output_dir = fs.ensure_dir(output_dir)

    written: List[Path] = []
    for n, strips in enumerate(iter_frames(io.BytesIO(data), codec)):
        path = output_dir / f"frame_{n:05d}.png"
        fs.atomic_save_image(raster.draw_strips(strips, size), path)
        written.append(path)
    logger.info(f"Rendered {len(written)} frames to {output_dir}")
    return written


def write_legacy_segments(result: FrameResult, path: Union[str, Path]) -> Path:
    """Save a traced frame as a legacy ``.seg`` file."""
    path = Path(path)
    fs.atomic_write_bytes(path, legacy.encode_segments(result.segments))
    return path


def render_legacy(seg_path: Union[str, Path], output: Union[str, Path], size: Tuple[int, int]) -> Path:
    """Render a legacy ``.seg`` file to a PNG."""
    segments = legacy.decode_segments(fs.read_bytes(seg_path))
    output = Path(output)
    fs.atomic_save_image(raster.draw_segments(segments, size), output)
    logger.info(f"Rendered {len(segments)} legacy segments to {output}")
    return output
