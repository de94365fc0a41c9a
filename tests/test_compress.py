"""Test the compressor leg: envelope tracking and clamps, table divide, streaming.

Run: uv run python tests/test_compress.py
"""

import os
import sys

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from compandor.engine.compandor import Compandor
from compandor.engine.params import ENVELOPE_MIN, ENVELOPE_MAX
from compandor.engine.sqrt_table import SqrtTable
from reference_compandor import reference_compress

SR = 8000
TABLE = SqrtTable()


def make_compandor():
    return Compandor(TABLE, SR, 3.0, 13.5)


def make_bursty(seconds=1.0, seed=0):
    """Noise with level jumps from silence to far above full scale."""
    rng = np.random.default_rng(seed)
    n = int(SR * seconds)
    levels = np.repeat(rng.choice([0.0, 0.001, 0.05, 0.5, 2.0, 40.0], size=n // 200 + 1), 200)[:n]
    return rng.standard_normal(n) * levels


# ---------------------------------------------------------------------------
# Test 1: numba kernel matches the longhand loop
# ---------------------------------------------------------------------------
def test_matches_reference():
    print("Test 1: compress vs plain-Python reference")
    audio = make_bursty()
    c = make_compandor()
    leg = c.compressor
    expected, peak, envelope = reference_compress(
        audio.tolist(), 1.0, 1.0, leg.step_up, leg.step_down, TABLE.values)

    out = c.compress(audio)
    assert out is audio
    assert np.allclose(out, expected, rtol=1e-12, atol=0.0)
    assert leg.peak == pytest.approx(peak, rel=1e-12)
    assert leg.envelope == pytest.approx(envelope, rel=1e-12)
    print("  OK")


# ---------------------------------------------------------------------------
# Test 2: envelope stays inside [ENVELOPE_MIN, ENVELOPE_MAX]
# ---------------------------------------------------------------------------
def test_envelope_clamped():
    print("Test 2: envelope clamp over bursty input")
    rng = np.random.default_rng(3)
    # Long silence reaches the floor, loud noise drives it into the ceiling
    audio = np.concatenate([np.zeros(1000), rng.standard_normal(500) * 40.0,
                            make_bursty(seconds=0.25, seed=3)])
    c = make_compandor()
    envelopes = np.empty(len(audio))
    for i in range(len(audio)):
        c.compress(audio[i:i + 1])
        envelopes[i] = c.compressor.envelope
    assert envelopes.min() >= ENVELOPE_MIN
    assert envelopes.max() <= ENVELOPE_MAX
    # Both clamps are actually exercised by this input
    assert envelopes.min() == ENVELOPE_MIN
    assert envelopes.max() == ENVELOPE_MAX
    assert np.all(np.isfinite(audio))
    print(f"  envelope range [{envelopes.min():.4f}, {envelopes.max():.4f}]: OK")


def test_full_scale_overload():
    c = make_compandor()
    loud = np.full(2000, 100.0)
    c.compress(loud)
    assert c.compressor.envelope == ENVELOPE_MAX
    assert c.compressor.peak == pytest.approx(100.0, rel=0.02)
    assert np.all(np.isfinite(loud))
    assert loud[-1] == pytest.approx(100.0 / TABLE.lookup(ENVELOPE_MAX))


# ---------------------------------------------------------------------------
# Test 3: silence, peak and envelope decay monotonically to the floor
# ---------------------------------------------------------------------------
def test_silence_decay():
    print("Test 3: silence after unity state")
    c = make_compandor()
    silence = np.zeros(2000)
    peaks, envelopes = [], []
    for i in range(len(silence)):
        c.compress(silence[i:i + 1])
        peaks.append(c.compressor.peak)
        envelopes.append(c.compressor.envelope)
    peaks = np.array(peaks)
    envelopes = np.array(envelopes)

    assert np.all(np.diff(peaks) <= 0.0)
    assert np.all(np.diff(envelopes) <= 0.0)
    assert peaks.min() >= 0.0
    assert envelopes.min() >= ENVELOPE_MIN
    assert envelopes[-1] == ENVELOPE_MIN
    assert envelopes[0] < 1.0
    assert np.all(silence == 0.0)
    print(f"  envelope floor reached after {np.argmax(envelopes == ENVELOPE_MIN)} samples: OK")


def test_quiet_sample_after_silence_is_finite():
    c = make_compandor()
    c.compress(np.zeros(2000))
    tiny = np.array([1e-6, -1e-6, 0.0])
    c.compress(tiny)
    assert np.all(np.isfinite(tiny))
    assert tiny[0] == pytest.approx(1e-6 / np.sqrt(0.001), rel=1e-6)


# ---------------------------------------------------------------------------
# Test 4: constant 0.5 settles at 0.5 / sqrt(0.5)
# ---------------------------------------------------------------------------
def test_steady_state():
    print("Test 4: constant 0.5 input")
    c = make_compandor()
    audio = np.full(8000, 0.5)
    c.compress(audio)
    tail = audio[-200:]
    target = 0.5 / np.sqrt(0.5)
    assert np.all(np.abs(tail - target) < 0.025)
    assert abs(tail.mean() - target) < 0.015
    assert c.compressor.peak == pytest.approx(0.5, abs=0.01)
    assert c.compressor.envelope == pytest.approx(0.5, abs=0.03)
    print(f"  output mean {tail.mean():.4f} (target {target:.4f}): OK")


def test_halves_dynamic_range():
    # -20 dB sine comes out about -10 dB relative to a 0 dB sine
    t = np.arange(SR) / SR
    loud = np.sin(2 * np.pi * 1000.0 * t)
    quiet = 0.1 * loud
    a, b = make_compandor(), make_compandor()
    a.compress(loud)
    b.compress(quiet)
    half = SR // 2
    rms_loud = np.sqrt(np.mean(loud[half:] ** 2))
    rms_quiet = np.sqrt(np.mean(quiet[half:] ** 2))
    assert 20 * np.log10(rms_quiet / rms_loud) == pytest.approx(-10.0, abs=1.0)


# ---------------------------------------------------------------------------
# Test 5: streaming, chunk boundaries do not matter
# ---------------------------------------------------------------------------
def test_chunked_equals_one_shot():
    audio = make_bursty(seed=5)
    whole = audio.copy()
    make_compandor().compress(whole)

    chunked = audio.copy()
    c = make_compandor()
    bounds = [0, 1, 7, 160, 161, 999, 4000, len(audio)]
    for start, end in zip(bounds[:-1], bounds[1:]):
        c.compress(chunked[start:end])
    assert np.array_equal(whole, chunked)


def test_partial_count():
    audio = make_bursty(seconds=0.1, seed=6)
    buf = audio.copy()
    c = make_compandor()
    c.compress(buf, n=100)
    assert np.array_equal(buf[100:], audio[100:])

    ref = audio[:100].copy()
    d = make_compandor()
    d.compress(ref)
    assert np.array_equal(buf[:100], ref)
    assert c.compressor.envelope == d.compressor.envelope


def test_zero_count_is_noop():
    c = make_compandor()
    buf = np.array([0.3, 0.4])
    c.compress(buf, n=0)
    assert np.array_equal(buf, [0.3, 0.4])
    assert c.compressor.peak == 1.0
    assert c.compressor.envelope == 1.0


def test_legs_are_independent():
    c = make_compandor()
    c.compress(make_bursty(seconds=0.2))
    assert c.expander.peak == 1.0
    assert c.expander.envelope == 1.0


def test_float32_buffer():
    audio = make_bursty(seconds=0.2, seed=7).astype(np.float32)
    ref = audio.astype(np.float64)
    make_compandor().compress(audio)
    make_compandor().compress(ref)
    assert audio.dtype == np.float32
    assert np.allclose(audio, ref, rtol=1e-6, atol=1e-9)


# ---------------------------------------------------------------------------
# Test 6: buffer contract
# ---------------------------------------------------------------------------
def test_rejects_bad_buffers():
    c = make_compandor()
    with pytest.raises(TypeError):
        c.compress([0.1, 0.2])
    with pytest.raises(TypeError):
        c.compress(np.zeros(10, dtype=np.int16))
    with pytest.raises(ValueError):
        c.compress(np.zeros((10, 2)))
    frozen = np.zeros(10)
    frozen.setflags(write=False)
    with pytest.raises(ValueError):
        c.compress(frozen)
    with pytest.raises(ValueError):
        c.compress(np.zeros(10), n=11)
    with pytest.raises(ValueError):
        c.compress(np.zeros(10), n=-1)


def test_count_must_be_integral():
    c = make_compandor()
    for n in (2.9, 3.0, "3", True):
        with pytest.raises(TypeError):
            c.compress(np.zeros(10), n=n)
    buf = np.full(10, 0.5)
    c.compress(buf, n=np.int64(3))
    assert np.all(buf[3:] == 0.5)
    assert np.all(buf[:3] != 0.5)


if __name__ == "__main__":
    test_matches_reference()
    test_envelope_clamped()
    test_silence_decay()
    test_steady_state()
    sys.exit(pytest.main([__file__, "-v"]))
