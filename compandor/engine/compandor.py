"""2:1 syllabic compandor for narrowband analog radio (AMPS, TACS, NMT, C-Netz).

Signal flow:
    TX audio -> compress (2:1, dB halved) -> modulator ... demodulator -> expand (1:2) -> RX audio

A Compandor is one radio channel's state: a compressor leg for outbound audio
and an expander leg for inbound audio. Both legs run the same peak/envelope
follower (primitives/envelope.py) and differ only in their output mapping:

    compressor: x / sqrt(envelope), sqrt read from the shared table,
                envelope clamped to [ENVELOPE_MIN, ENVELOPE_MAX]
    expander:   x * sqrt(envelope), sqrt computed directly,
                envelope clamped below only

Filter memory persists between calls, so consecutive buffers of one stream
must go through the same Compandor. A Compandor is not thread-safe; give each
concurrently processed channel its own instance. The SqrtTable is read-only
and may be shared freely.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

import numpy as np

from compandor.engine.params import (
    SR, ATTACK_MS, RECOVERY_MS, ATTACK_FACTOR, RECOVERY_FACTOR,
    ENVELOPE_MIN, ENVELOPE_MAX,
)
from compandor.engine.sqrt_table import SqrtTable, shared_table
from primitives.envelope import (
    follow_envelope, OUTPUT_TABLE_DIVIDE, OUTPUT_SQRT_MULTIPLY,
)

log = logging.getLogger(__name__)


def step_factor(factor: float, time_ms: float, sample_rate: float) -> float:
    """Per-sample multiplier that scales the envelope by `factor` over `time_ms`."""
    return factor ** (1000.0 / time_ms / sample_rate)


@dataclass
class Tracker:
    """Filter memory and response of one leg (compressor or expander)."""
    step_up: float
    step_down: float
    envelope_max: float
    output: int
    peak: float = 1.0
    envelope: float = 1.0


class Compandor:
    """One radio channel's compressor + expander state.

    Usage:
        table = SqrtTable()
        c = Compandor(table, sample_rate=8000, attack_ms=3.0, recovery_ms=13.5)
        c.compress(tx_block)   # rewritten in place
        c.expand(rx_block)
    """

    def __init__(self, table: SqrtTable, sample_rate: float = SR,
                 attack_ms: float = ATTACK_MS, recovery_ms: float = RECOVERY_MS):
        if not isinstance(table, SqrtTable):
            raise TypeError(f"Compandor needs a SqrtTable, got {type(table).__name__}")
        self.table = table
        self.configure(sample_rate, attack_ms, recovery_ms)

    @classmethod
    def from_shared_table(cls, sample_rate: float = SR, attack_ms: float = ATTACK_MS,
                          recovery_ms: float = RECOVERY_MS) -> "Compandor":
        """Build on the process-wide table (raises TableNotInitializedError before init)."""
        return cls(shared_table(), sample_rate, attack_ms, recovery_ms)

    def configure(self, sample_rate: float, attack_ms: float, recovery_ms: float):
        """Reset both legs and derive their attack / recovery steps.

        Calling again with the same arguments gives the same state.
        """
        for name, value in (("sample_rate", sample_rate), ("attack_ms", attack_ms),
                            ("recovery_ms", recovery_ms)):
            if not (math.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be a positive finite number, got {value!r}")

        self.sample_rate = float(sample_rate)
        self.attack_ms = float(attack_ms)
        self.recovery_ms = float(recovery_ms)

        # Same timing on both legs, per TIA/EIA-553
        step_up = step_factor(ATTACK_FACTOR, attack_ms, sample_rate)
        step_down = step_factor(RECOVERY_FACTOR, recovery_ms, sample_rate)
        self.compressor = Tracker(step_up, step_down, ENVELOPE_MAX, OUTPUT_TABLE_DIVIDE)
        self.expander = Tracker(step_up, step_down, math.inf, OUTPUT_SQRT_MULTIPLY)
        log.debug("configured %g Hz attack=%gms recovery=%gms step_up=%.6f step_down=%.6f",
                  sample_rate, attack_ms, recovery_ms, step_up, step_down)

    def compress(self, samples: np.ndarray, n: int | None = None) -> np.ndarray:
        """Compress samples[:n] in place (2:1) and return the buffer."""
        return self._process(self.compressor, samples, n)

    def expand(self, samples: np.ndarray, n: int | None = None) -> np.ndarray:
        """Expand samples[:n] in place (1:2) and return the buffer."""
        return self._process(self.expander, samples, n)

    def _process(self, tracker: Tracker, samples, n):
        n = _check_buffer(samples, n)
        state = np.array([tracker.peak, tracker.envelope], dtype=np.float64)
        follow_envelope(samples, n, state, tracker.step_up, tracker.step_down,
                        ENVELOPE_MIN, tracker.envelope_max, tracker.output,
                        self.table.values, self.table.step)
        tracker.peak = float(state[0])
        tracker.envelope = float(state[1])
        return samples

    def __repr__(self):
        return (f"Compandor(sample_rate={self.sample_rate:g}, attack_ms={self.attack_ms:g}, "
                f"recovery_ms={self.recovery_ms:g})")


def _check_buffer(samples, n):
    """Validate a caller buffer for in-place processing; returns the sample count."""
    if not isinstance(samples, np.ndarray):
        raise TypeError(f"samples must be a numpy array, got {type(samples).__name__}")
    if samples.ndim != 1:
        raise ValueError(f"samples must be one-dimensional, got shape {samples.shape}")
    if samples.dtype not in (np.float32, np.float64):
        raise TypeError(f"samples must be float32 or float64, got {samples.dtype}")
    if not samples.flags.writeable:
        raise ValueError("samples buffer is read-only")
    if n is None:
        return len(samples)
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise TypeError(f"n must be an integer sample count, got {n!r}")
    n = int(n)
    if not 0 <= n <= len(samples):
        raise ValueError(f"n={n} outside buffer of {len(samples)} samples")
    return n
