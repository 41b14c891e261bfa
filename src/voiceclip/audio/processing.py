"""Local post-processing for synthesized clips.

Everything here runs on the client against the downloaded audio bytes:
decoding, silence trimming, waveform bars and 16-bit PCM WAV encoding.
Samples are kept as ``float32`` arrays shaped ``(frames, channels)``.
"""

from __future__ import annotations

import io
import logging
import math
import struct
from dataclasses import dataclass, field
from typing import List

import numpy as np
import soundfile as sf

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.015
DEFAULT_MIN_DURATION_MS = 250
DEFAULT_BAR_COUNT = 48

THRESHOLD_RANGE = (0.002, 0.1)
MIN_DURATION_RANGE_MS = (120, 1000)

BAR_FLOOR = 0.04
BAR_CEILING = 1.0
# Peak divisor floor so near-silent clips do not blow up to full height.
PEAK_FLOOR = 0.01


class DecodeError(RuntimeError):
    """Raised when the audio container cannot be decoded locally."""


@dataclass(frozen=True)
class DecodedAudio:
    samples: np.ndarray
    sample_rate: int

    @property
    def frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channels(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration_ms(self) -> int:
        return self.frames * 1000 // self.sample_rate


@dataclass(frozen=True)
class TrimResult:
    audio: DecodedAudio
    leading_ms: int = 0
    trailing_ms: int = 0
    did_trim: bool = False


@dataclass(frozen=True)
class ClipSummary:
    bars: List[float]
    duration_ms: int


@dataclass(frozen=True)
class ProcessedClip:
    wav: bytes
    did_trim: bool
    duration_ms: int
    leading_ms: int
    trailing_ms: int
    bars: List[float] = field(default_factory=list)


def _clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def decode(data: bytes) -> DecodedAudio:
    """Decode any container libsndfile understands (MP3, WAV, FLAC, OGG)."""

    if not data:
        raise DecodeError("No audio data to decode.")
    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype="float32", always_2d=True)
    except (sf.SoundFileError, RuntimeError, TypeError) as exc:
        logger.debug("Audio decode failed: %s", exc)
        raise DecodeError("Audio could not be decoded in this environment.") from exc
    if samples.shape[0] == 0 or sample_rate <= 0:
        raise DecodeError("Decoded audio is empty.")
    return DecodedAudio(samples=samples, sample_rate=int(sample_rate))


def analyze_waveform(audio: DecodedAudio, bar_count: int = DEFAULT_BAR_COUNT) -> List[float]:
    """Peak-normalized bar heights from the first channel, each in [0.04, 1]."""

    if bar_count <= 0:
        return []
    channel = np.abs(audio.samples[:, 0])
    block = channel.shape[0] // bar_count or 1
    span = block * bar_count
    if channel.shape[0] < span:
        channel = np.pad(channel, (0, span - channel.shape[0]))
    peaks = channel[:span].reshape(bar_count, block).max(axis=1)
    divisor = max(float(peaks.max()), PEAK_FLOOR)
    return [_clamp(float(peak) / divisor, BAR_FLOOR, BAR_CEILING) for peak in peaks]


def trim_silence(
    audio: DecodedAudio,
    threshold: float | None = None,
    min_duration_ms: float | None = None,
) -> TrimResult:
    """Drop leading and trailing frames whose loudest channel is under ``threshold``.

    Both options are clamped with :func:`clamp_trim_options` first. The
    original audio comes back untouched when nothing would be removed,
    when everything would be removed, or when the remainder is shorter than
    ``min_duration_ms``.
    """

    threshold, min_duration_ms = clamp_trim_options(threshold, min_duration_ms)
    frames = audio.frames
    min_samples = math.floor(min_duration_ms / 1000 * audio.sample_rate)
    level = np.abs(audio.samples).max(axis=1)
    loud = np.flatnonzero(level >= threshold)
    if loud.size == 0:
        return TrimResult(audio=audio)

    start = int(loud[0])
    end = int(loud[-1])
    kept = end - start + 1
    if kept <= 0 or kept >= frames or kept < min_samples:
        return TrimResult(audio=audio)

    trimmed = DecodedAudio(
        samples=np.ascontiguousarray(audio.samples[start : end + 1]),
        sample_rate=audio.sample_rate,
    )
    return TrimResult(
        audio=trimmed,
        leading_ms=start * 1000 // audio.sample_rate,
        trailing_ms=(frames - 1 - end) * 1000 // audio.sample_rate,
        did_trim=True,
    )


def encode_wav(audio: DecodedAudio) -> bytes:
    """Serialize to a 44-byte-header RIFF/WAVE file with interleaved 16-bit PCM."""

    channels = audio.channels
    block_align = channels * 2
    data_size = audio.frames * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        channels,
        audio.sample_rate,
        audio.sample_rate * block_align,
        block_align,
        16,
        b"data",
        data_size,
    )
    clipped = np.clip(audio.samples.astype(np.float64), -1.0, 1.0)
    scaled = np.where(clipped < 0, clipped * 32768.0, clipped * 32767.0)
    pcm = np.trunc(scaled).astype("<i2")
    return header + pcm.tobytes(order="C")


def clamp_trim_options(
    threshold: float | None = None, min_duration_ms: float | None = None
) -> tuple[float, float]:
    return (
        _clamp(DEFAULT_THRESHOLD if threshold is None else threshold, *THRESHOLD_RANGE),
        _clamp(
            DEFAULT_MIN_DURATION_MS if min_duration_ms is None else min_duration_ms,
            *MIN_DURATION_RANGE_MS,
        ),
    )


def summarize_clip(data: bytes, bar_count: int = DEFAULT_BAR_COUNT) -> ClipSummary:
    decoded = decode(data)
    return ClipSummary(
        bars=analyze_waveform(decoded, bar_count),
        duration_ms=decoded.duration_ms,
    )


def process_clip(
    data: bytes,
    *,
    threshold: float | None = None,
    min_duration_ms: float | None = None,
    bar_count: int = DEFAULT_BAR_COUNT,
) -> ProcessedClip:
    """Decode, trim and re-encode a clip as WAV, with bars for the result."""

    result = trim_silence(decode(data), threshold, min_duration_ms)
    if result.did_trim:
        logger.info(
            "Trimmed %d ms leading and %d ms trailing silence",
            result.leading_ms,
            result.trailing_ms,
        )
    return ProcessedClip(
        wav=encode_wav(result.audio),
        did_trim=result.did_trim,
        duration_ms=result.audio.duration_ms,
        leading_ms=result.leading_ms,
        trailing_ms=result.trailing_ms,
        bars=analyze_waveform(result.audio, bar_count),
    )


__all__ = [
    "ClipSummary",
    "DecodeError",
    "DecodedAudio",
    "ProcessedClip",
    "TrimResult",
    "analyze_waveform",
    "clamp_trim_options",
    "decode",
    "encode_wav",
    "process_clip",
    "summarize_clip",
    "trim_silence",
]
