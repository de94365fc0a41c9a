"""Level and noise metrics for companded audio.

Everything works on mono (N,) or multi-column (N, C) arrays; multi-column
input is measured over all samples. Levels are dB relative to full scale
(1.0). Silent input reports -inf rather than raising.

Dependencies: numpy, scipy (already installed).
"""

import numpy as np
from scipy.signal import butter, sosfilt

SILENCE_DB = -np.inf


def _db(power):
    return 10.0 * np.log10(power) if power > 1e-24 else SILENCE_DB


def rms_db(audio):
    """RMS level in dBFS."""
    a = np.asarray(audio, dtype=np.float64)
    if a.size == 0:
        return SILENCE_DB
    return float(_db(np.mean(a ** 2)))


def peak_db(audio):
    """Peak level in dBFS."""
    a = np.asarray(audio, dtype=np.float64)
    if a.size == 0:
        return SILENCE_DB
    peak = float(np.max(np.abs(a)))
    return float(20.0 * np.log10(peak)) if peak > 1e-12 else SILENCE_DB


def crest_factor_db(audio):
    """Peak-to-RMS ratio in dB (3.01 dB for a sine)."""
    rms = rms_db(audio)
    if rms == SILENCE_DB:
        return 0.0
    return peak_db(audio) - rms


def level_error_db(reference, audio):
    """How far audio's RMS level sits from reference's, in dB (positive = louder)."""
    level, ref = rms_db(audio), rms_db(reference)
    if level == ref == SILENCE_DB:
        return 0.0
    return level - ref


def snr_db(reference, audio):
    """Signal-to-noise ratio of audio against a clean reference.

    Noise is everything in audio that is not the reference.
    """
    ref = np.asarray(reference, dtype=np.float64)
    out = np.asarray(audio, dtype=np.float64)
    if ref.shape != out.shape:
        raise ValueError(f"shape mismatch: {ref.shape} vs {out.shape}")
    signal = np.mean(ref ** 2)
    noise = np.mean((out - ref) ** 2)
    if noise <= 1e-24:
        return np.inf
    return float(_db(signal) - _db(noise))


def voiceband(audio, sr, low=300.0, high=3400.0):
    """Band-limit to the 300-3400 Hz telephone voice channel."""
    sos = butter(4, [low, min(high, 0.45 * sr)], btype="bandpass", fs=sr, output="sos")
    return sosfilt(sos, np.asarray(audio, dtype=np.float64), axis=0)
