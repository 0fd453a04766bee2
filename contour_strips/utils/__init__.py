"""Cross-cutting utilities (lowest dependency layer).

This package provides shared primitives for:
    - Config validation (validators)
    - Atomic I/O and image loading (fs)
    - Pixel geometry (geometry)
    - Stage timing (profiler)
    - Unified logging (logging_config)

No module in utils/ may import from upper layers (tracing, codec,
rendering, batch).

Convenience imports:
    from contour_strips.utils import fs, geometry, validators
    from contour_strips.utils.logging_config import setup_logging, get_logger
"""

from . import fs
from . import geometry
from . import logging_config
from . import profiler
from . import validators

from .logging_config import get_logger, push_context, setup_logging

__all__ = [
    'fs',
    'geometry',
    'logging_config',
    'profiler',
    'validators',
    'setup_logging',
    'get_logger',
    'push_context',
]
