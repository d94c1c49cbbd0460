"""
Loudness measurement for VAD threshold comparisons.
"""

import math
from typing import Callable, Optional, Union

import numpy as np


# Returned for silence (rms == 0) and for anything non-finite
SILENCE_FLOOR_DB = -100.0

Frame = Union[np.ndarray, bytes, bytearray, memoryview]


def _normalize(frame: Frame, dtype: Optional[str] = None) -> np.ndarray:
    """Return the frame as float samples centred on zero, roughly in [-1, 1]."""
    if isinstance(frame, (bytes, bytearray, memoryview)):
        samples = np.frombuffer(frame, dtype=dtype or 'int16')
    else:
        samples = np.asarray(frame)
        if dtype is not None:
            samples = samples.astype(dtype, copy=False)

    if samples.dtype == np.uint8:
        return (samples.astype(np.float64) - 128.0) / 128.0
    if samples.dtype == np.int16:
        return samples.astype(np.float64) / 32768.0
    if samples.dtype == np.int32:
        return samples.astype(np.float64) / 2147483648.0
    return samples.astype(np.float64)


def measure_level(frame: Frame, dtype: Optional[str] = None) -> float:
    """
    Compute the loudness of one audio frame in dB.

    Samples are centred and normalized (uint8 around 128, signed ints by their
    full scale, floats as-is), then ``20 * log10(rms)`` is returned.

    Args:
        frame: numpy array or raw bytes of samples
        dtype: Sample type for raw bytes (default int16)

    Returns:
        Level in dB, or SILENCE_FLOOR_DB for silent/empty/non-finite input
    """
    samples = _normalize(frame, dtype)
    if samples.size == 0:
        return SILENCE_FLOOR_DB

    rms = float(np.sqrt(np.mean(samples ** 2)))
    if rms <= 0.0 or not math.isfinite(rms):
        return SILENCE_FLOOR_DB

    level = 20.0 * math.log10(rms)
    if not math.isfinite(level):
        return SILENCE_FLOOR_DB
    return level


class LevelMeter:
    """Samples the newest frame from a source and reports its level."""

    def __init__(self, frame_source: Callable[[], Optional[Frame]], dtype: Optional[str] = None):
        self._frame_source = frame_source
        self._dtype = dtype

    def read(self) -> float:
        frame = self._frame_source()
        if frame is None:
            return SILENCE_FLOOR_DB
        return measure_level(frame, self._dtype)

    __call__ = read
