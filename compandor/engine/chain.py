"""Buffer-level entry points for the compandor.

render_compandor() runs whole recordings through one Compandor per audio
column, chunk by chunk, the way a radio front end feeds it: filter state
streams across chunk boundaries and each finished chunk can be handed to a
callback.

simulate_channel() models the link the compandor exists for:

    input -> compress -> + channel noise -> expand -> output
    input ------------> + channel noise ----------> plain output

and reports how much the expander pushes down the idle channel noise.

All callers -- CLI, tests, scripts -- use these two functions.
"""

import logging
import time

import numpy as np

from compandor.engine.compandor import Compandor
from compandor.engine.params import validate_params
from compandor.engine.sqrt_table import initialize_table
from shared.analysis import rms_db, level_error_db, voiceband

log = logging.getLogger(__name__)

MODES = ("compress", "expand", "roundtrip")

DEFAULT_CHUNK = 160  # 20 ms at 8 kHz, one speech frame


def _channel_compandors(params, n_columns, table):
    return [Compandor(table, params["sample_rate"], params["attack_ms"],
                      params["recovery_ms"]) for _ in range(n_columns)]


def render_compandor(audio: np.ndarray, params: dict, mode: str = "compress",
                     table=None, chunk_callback=None,
                     chunk_size: int = DEFAULT_CHUNK) -> np.ndarray:
    """Compress, expand, or compress-then-expand a recording.

    Args:
        audio: float array -- mono (samples,) or (samples, channels).
            Never modified; each column gets its own compandor and columns
            are never mixed.
        params: parameter dict (see compandor/engine/params.py)
        mode: "compress", "expand", or "roundtrip" (separate TX and RX
            compandors, as on a real link)
        table: SqrtTable to use; defaults to the process-wide table
        chunk_callback: if provided, called with each processed chunk.
            Return True to continue, False to stop early.
        chunk_size: samples per chunk

    Returns:
        processed audio, same shape as the input (shorter if stopped early)
    """
    if mode not in MODES:
        raise ValueError(f"unknown mode {mode!r}, expected one of {MODES}")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    params = validate_params(params)
    if table is None:
        table = initialize_table()

    out = np.array(audio, dtype=np.float64)
    if out.ndim not in (1, 2):
        raise ValueError(f"audio must be (samples,) or (samples, channels), got {out.shape}")
    columns = [out] if out.ndim == 1 else [out[:, c] for c in range(out.shape[1])]
    tx = _channel_compandors(params, len(columns), table)
    rx = _channel_compandors(params, len(columns), table)

    t0 = time.perf_counter()
    n_samples = out.shape[0]
    end = 0
    for start in range(0, n_samples, chunk_size):
        end = min(start + chunk_size, n_samples)
        for col, c_tx, c_rx in zip(columns, tx, rx):
            block = col[start:end]
            if mode == "compress":
                c_tx.compress(block)
            elif mode == "expand":
                c_rx.expand(block)
            else:
                c_tx.compress(block)
                c_rx.expand(block)
        if chunk_callback is not None and not chunk_callback(out[start:end]):
            log.debug("render stopped by callback at sample %d", end)
            break

    log.debug("%s: %d samples x %d columns in %.3fs", mode, end, len(columns),
              time.perf_counter() - t0)
    return out[:end]


def channel_noise(shape, sr, noise_db, seed=42):
    """Voice-band Gaussian noise with an RMS level of noise_db dBFS."""
    rng = np.random.default_rng(seed)
    white = rng.standard_normal(shape)
    if white.shape[0] == 0:
        return white
    noise = voiceband(white, sr)
    rms = np.sqrt(np.mean(noise ** 2))
    if rms > 0:
        noise *= 10.0 ** (noise_db / 20.0) / rms
    return noise


def simulate_channel(audio: np.ndarray, params: dict, table=None) -> dict:
    """Send audio over a noisy channel with and without companding.

    Returns dict with keys:
        companded: compress -> noise -> expand output
        plain: input + the same noise, no companding
        noise: the channel noise that was added
        idle_noise_plain_db: RMS of the channel noise alone
        idle_noise_companded_db: RMS of the channel noise after the expander
        idle_noise_reduction_db: how far the expander lowered idle noise
        level_error_db: RMS level of the companded output relative to the input
    """
    params = validate_params(params)
    if table is None:
        table = initialize_table()
    audio = np.asarray(audio, dtype=np.float64)
    sr = params["sample_rate"]
    noise = channel_noise(audio.shape, sr, params["noise_db"], params["seed"])

    tx = render_compandor(audio, params, "compress", table=table)
    companded = render_compandor(tx + noise, params, "expand", table=table)
    plain = audio + noise

    # Idle channel: nothing transmitted, only noise reaches the expander
    idle = render_compandor(noise, params, "expand", table=table)
    idle_plain = rms_db(noise)
    idle_companded = rms_db(idle)

    result = {
        "companded": companded,
        "plain": plain,
        "noise": noise,
        "idle_noise_plain_db": idle_plain,
        "idle_noise_companded_db": idle_companded,
        "idle_noise_reduction_db": -level_error_db(noise, idle),
        "level_error_db": level_error_db(audio, companded),
    }
    log.debug("channel at %.1f dBFS noise: idle noise %.1f -> %.1f dBFS",
              params["noise_db"], idle_plain, idle_companded)
    return result
