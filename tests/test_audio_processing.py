from __future__ import annotations

import io
import struct

import numpy as np
import pytest
import soundfile as sf

from voiceclip.audio import (
    DecodeError,
    DecodedAudio,
    analyze_waveform,
    clamp_trim_options,
    decode,
    encode_wav,
    process_clip,
    summarize_clip,
    trim_silence,
)

RATE = 16_000


def padded_clip(
    loud_ms: int = 300, silence_ms: int = 350, level: float = 0.5, channels: int = 1
) -> DecodedAudio:
    silence = np.zeros((RATE * silence_ms // 1000, channels), dtype=np.float32)
    loud = np.full((RATE * loud_ms // 1000, channels), level, dtype=np.float32)
    return DecodedAudio(samples=np.concatenate([silence, loud, silence]), sample_rate=RATE)


def test_trim_keeps_the_loud_middle() -> None:
    result = trim_silence(padded_clip(), threshold=0.015, min_duration_ms=180)

    assert result.did_trim is True
    assert result.audio.frames == RATE * 300 // 1000
    assert result.audio.duration_ms == 300
    assert result.leading_ms == 350
    assert result.trailing_ms == 350


def test_trim_uses_the_loudest_channel() -> None:
    clip = padded_clip(channels=2)
    samples = clip.samples.copy()
    samples[:, 0] = 0.0
    samples[100, 0] = 0.9

    result = trim_silence(DecodedAudio(samples, RATE), threshold=0.015, min_duration_ms=120)

    assert result.did_trim is True
    assert result.audio.frames == (RATE * 650 // 1000) - 100
    assert result.audio.channels == 2


def test_clip_without_silence_is_untouched() -> None:
    clip = DecodedAudio(np.full((RATE, 1), 0.3, dtype=np.float32), RATE)

    result = trim_silence(clip, threshold=0.015, min_duration_ms=180)

    assert result.did_trim is False
    assert result.audio is clip
    assert (result.leading_ms, result.trailing_ms) == (0, 0)


def test_quiet_recording_is_not_erased() -> None:
    clip = DecodedAudio(np.full((RATE, 1), 0.001, dtype=np.float32), RATE)

    assert trim_silence(clip, threshold=0.015, min_duration_ms=180).did_trim is False


def test_remainder_shorter_than_minimum_is_rejected() -> None:
    clip = padded_clip(loud_ms=100)

    result = trim_silence(clip, threshold=0.015, min_duration_ms=180)

    assert result.did_trim is False
    assert result.audio is clip


def test_zero_minimum_duration_is_clamped_so_a_lone_click_is_not_kept() -> None:
    samples = np.zeros((RATE, 1), dtype=np.float32)
    samples[RATE // 2 : RATE // 2 + RATE // 1000, 0] = 0.9
    clip = DecodedAudio(samples, RATE)

    result = trim_silence(clip, threshold=0.015, min_duration_ms=0)

    assert result.did_trim is False
    assert result.audio is clip


def test_waveform_bars_are_peak_normalized() -> None:
    samples = np.zeros((RATE, 1), dtype=np.float32)
    samples[: RATE // 2, 0] = 0.8
    samples[RATE // 2 :, 0] = 0.2

    bars = analyze_waveform(DecodedAudio(samples, RATE), bar_count=4)

    assert bars == pytest.approx([1.0, 1.0, 0.25, 0.25])


def test_waveform_of_silence_sits_on_the_floor() -> None:
    bars = analyze_waveform(DecodedAudio(np.zeros((480, 1), dtype=np.float32), RATE))

    assert len(bars) == 48
    assert set(bars) == {0.04}


def test_waveform_handles_clips_shorter_than_bar_count() -> None:
    samples = np.array([[0.5], [1.0], [0.25]], dtype=np.float32)

    bars = analyze_waveform(DecodedAudio(samples, RATE), bar_count=5)

    assert bars == pytest.approx([0.5, 1.0, 0.25, 0.04, 0.04])


def test_wav_header_layout() -> None:
    clip = padded_clip(channels=2)

    wav = encode_wav(clip)

    fields = struct.unpack("<4sI4s4sIHHIIHH4sI", wav[:44])
    data_size = clip.frames * 2 * 2
    assert fields == (
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,
        2,
        RATE,
        RATE * 4,
        4,
        16,
        b"data",
        data_size,
    )
    assert len(wav) == 44 + data_size


def test_wav_samples_use_asymmetric_scaling_and_clamp() -> None:
    samples = np.array([[1.0], [-1.0], [2.0], [-3.0], [0.0]], dtype=np.float32)

    wav = encode_wav(DecodedAudio(samples, RATE))

    assert struct.unpack("<5h", wav[44:]) == (32767, -32768, 32767, -32768, 0)


def test_wav_decodes_with_a_standard_reader() -> None:
    rng = np.random.default_rng(7)
    samples = rng.uniform(-1.0, 1.0, size=(2205, 2)).astype(np.float32)

    decoded, rate = sf.read(io.BytesIO(encode_wav(DecodedAudio(samples, 22_050))), dtype="float32", always_2d=True)

    assert rate == 22_050
    assert decoded.shape == samples.shape
    assert np.max(np.abs(decoded - samples)) <= 2 / 32768


def test_decode_rejects_unreadable_bytes() -> None:
    with pytest.raises(DecodeError):
        decode(b"")
    with pytest.raises(DecodeError):
        decode(b"definitely not audio")


def test_trim_options_are_clamped() -> None:
    assert clamp_trim_options() == (0.015, 250)
    assert clamp_trim_options(5, 10) == (0.1, 120)
    assert clamp_trim_options(0.0, 10_000) == (0.002, 1000)


def test_process_clip_returns_trimmed_wav() -> None:
    source = encode_wav(padded_clip())

    processed = process_clip(source, threshold=0.014, min_duration_ms=180)

    assert processed.did_trim is True
    assert processed.duration_ms == 300
    assert processed.leading_ms == 350
    assert len(processed.bars) == 48
    assert decode(processed.wav).frames == RATE * 300 // 1000


def test_summarize_clip_reports_duration() -> None:
    summary = summarize_clip(encode_wav(padded_clip()), 52)

    assert summary.duration_ms == 1000
    assert len(summary.bars) == 52
    assert max(summary.bars) == pytest.approx(1.0)
