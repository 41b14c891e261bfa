"""Client-side audio post-processing."""

from .processing import (
    ClipSummary,
    DecodeError,
    DecodedAudio,
    ProcessedClip,
    TrimResult,
    analyze_waveform,
    clamp_trim_options,
    decode,
    encode_wav,
    process_clip,
    summarize_clip,
    trim_silence,
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
