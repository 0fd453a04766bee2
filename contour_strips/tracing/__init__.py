"""Contour extraction and line tracing.

Modules:
    - sampler: greyscale pixel samplers over arrays or callables
    - blocks: spatial block index, edge scan, flood-fill traversal
    - cluster: contour points with usage tracking and neighbour search
    - tracer: greedy nearest-neighbour segment extraction
    - optimizer: collinear merge and rescaling
    - pipeline: per-frame orchestration with statistics
"""

from .types import ContourPoint, FrameStats, LineSegment, PointDistance
from .sampler import ArraySampler, FunctionSampler
from .blocks import Block, BlockIndex, ScanStats
from .cluster import ContourCluster
from .tracer import LineTracer, extract_segments, next_segment
from .optimizer import optimize_segments, rescale_segments
from .pipeline import FrameResult, encode_frame_result, process_frame, trace_frame

__all__ = [
    "ArraySampler",
    "Block",
    "BlockIndex",
    "ContourCluster",
    "ContourPoint",
    "FrameResult",
    "FrameStats",
    "FunctionSampler",
    "LineSegment",
    "LineTracer",
    "PointDistance",
    "ScanStats",
    "encode_frame_result",
    "extract_segments",
    "next_segment",
    "optimize_segments",
    "process_frame",
    "rescale_segments",
    "trace_frame",
]
