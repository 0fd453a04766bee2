"""Typed errors shared by every layer.

Per-frame failures surface as exceptions so a batch run can skip, pad
or abort one frame without tearing down the whole process.  Running out
of points while tracing is not an error (``next_segment`` returns None),
and short segments are dropped with a DEBUG record.
"""


class ContourError(Exception):
    """Base class for all contour-strips errors."""

    pass


class ConfigError(ContourError):
    """Raised when configuration loading or validation fails."""

    pass


class UnsupportedCoordinateWidthError(ConfigError):
    """Raised when a coordinate width other than 8 or 16 bits is requested."""

    def __init__(self, width: object):
        super().__init__(f"Unsupported coordinate width: {width!r} (expected 8 or 16)")
        self.width = width


class EncodingOverflowError(ContourError):
    """Raised when a frame does not fit the strip wire format."""

    pass


class CoordinateRangeError(EncodingOverflowError):
    """Raised when a coordinate does not fit the configured coordinate width."""

    pass


class DecodeError(ContourError):
    """Raised when a stream ends or is malformed inside a frame or record."""

    pass
