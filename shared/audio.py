"""Shared audio I/O utilities.

Provides load_wav and save_wav used by the CLI renderer and test scripts.
"""

from math import gcd

import numpy as np
from scipy.io import wavfile


def load_wav(path, sr=None):
    """Load a WAV file as float64, optionally resampling to `sr`.

    Returns (audio_array, sample_rate).
    Audio is mono (samples,) or multi-column (samples, channels), full scale 1.0.
    sr=None keeps the file's own rate.
    """
    file_sr, data = wavfile.read(path)
    if data.dtype == np.int16:
        audio = data.astype(np.float64) / 32768.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / 2147483648.0
    elif data.dtype == np.uint8:
        audio = (data.astype(np.float64) - 128.0) / 128.0
    else:
        audio = data.astype(np.float64)
    if sr is not None and file_sr != sr:
        from scipy.signal import resample_poly
        g = gcd(sr, file_sr)
        audio = resample_poly(audio, sr // g, file_sr // g, axis=0)
        file_sr = sr
    return audio, file_sr


def save_wav(path, audio, sr, as_float=False, normalize=False):
    """Save audio as a 16-bit (or 32-bit float) WAV file.

    Levels are written as-is unless normalize=True, since companded audio
    carries its level information in the samples. 16-bit output clips at
    full scale; float output does not.
    """
    audio = np.asarray(audio, dtype=np.float64)
    if normalize:
        peak = np.max(np.abs(audio)) if audio.size else 0.0
        if peak > 0:
            audio = audio / peak * 0.9
    if as_float:
        wavfile.write(path, sr, audio.astype(np.float32))
    else:
        out = (np.clip(audio, -1.0, 1.0) * 32767).astype(np.int16)
        wavfile.write(path, sr, out)
