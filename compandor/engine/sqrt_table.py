"""Precomputed square roots for the compressor's divide.

table[i] = sqrt(i * TABLE_STEP) for i in [0, TABLE_SIZE), i.e. sqrt(envelope)
for envelopes in [0, 10.0) quantized to 0.001.

The table is immutable once built. Build one with SqrtTable() and hand it to
every Compandor, or call initialize_table() once at startup and use the
process-wide instance via shared_table().
"""

import logging
import threading

import numpy as np

from compandor.engine.params import TABLE_SIZE, TABLE_STEP

log = logging.getLogger(__name__)


class TableNotInitializedError(RuntimeError):
    """The process-wide sqrt table was requested before initialize_table()."""


class SqrtTable:
    """Read-only sqrt lookup table, safe to share between channels and threads."""

    def __init__(self, size: int = TABLE_SIZE, step: float = TABLE_STEP):
        values = np.sqrt(np.arange(size, dtype=np.float64) * step)
        values.setflags(write=False)
        self.values = values
        self.step = step

    def __len__(self):
        return len(self.values)

    def __getitem__(self, idx):
        return self.values[idx]

    def lookup(self, envelope: float) -> float:
        """sqrt(envelope) the way the compressor computes it."""
        return float(self.values[int(envelope / self.step)])

    @property
    def max_envelope(self) -> float:
        """Largest envelope that still indexes inside the table."""
        return len(self.values) * self.step


_shared = None
_shared_lock = threading.Lock()


def initialize_table() -> SqrtTable:
    """Build the process-wide table once and return it.

    Call before any channel is configured from it. The lock makes the
    finished table visible to every thread that later calls shared_table().
    Repeated calls return the existing instance.
    """
    global _shared
    with _shared_lock:
        if _shared is None:
            _shared = SqrtTable()
            log.debug("sqrt table ready: %d entries, step %g",
                      len(_shared), _shared.step)
        return _shared


def shared_table() -> SqrtTable:
    """The process-wide table. Raises TableNotInitializedError before init."""
    with _shared_lock:
        table = _shared
    if table is None:
        raise TableNotInitializedError(
            "compandor sqrt table not initialized; call initialize_table() first")
    return table
