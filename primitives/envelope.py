"""Peak / envelope follower — the recursive inner loop of the compandor.

Per sample:
    1. peak rises instantly to |x|, otherwise decays by step_down
    2. envelope rises by step_up while below peak, otherwise falls by step_down
    3. envelope is clamped to [env_min, env_max]
    4. the sample is rewritten through the output mapping

Output codes select the mapping applied in step 4:
    0 = divide by sqrt(envelope) read from a lookup table (compressor)
    1 = multiply by sqrt(envelope), computed directly (expander)

Each sample depends on the filter memory left by the previous one, so the
loop is a strict left-to-right fold. The memory lives in a 2-element state
array [peak, envelope] that is read on entry and written back on exit, which
lets successive buffers stream through the same filter.
"""

import numpy as np
from numba import njit

OUTPUT_TABLE_DIVIDE = 0
OUTPUT_SQRT_MULTIPLY = 1


@njit(cache=True)
def follow_envelope(samples, n, state, step_up, step_down,
                    env_min, env_max, output, sqrt_tab, tab_step):
    """Run the follower over samples[:n] in place.

    Args:
        samples: float array, rewritten in place
        n: number of leading samples to process
        state: float64 array [peak, envelope], updated in place
        step_up: per-sample attack multiplier (> 1)
        step_down: per-sample recovery multiplier (< 1)
        env_min, env_max: envelope clamp (env_max=inf disables the upper clamp)
        output: OUTPUT_TABLE_DIVIDE or OUTPUT_SQRT_MULTIPLY
        sqrt_tab: sqrt lookup table, only read for OUTPUT_TABLE_DIVIDE
        tab_step: envelope quantization step of sqrt_tab
    """
    peak = state[0]
    envelope = state[1]
    for i in range(n):
        value = samples[i]
        mag = abs(value)

        if mag > peak:
            peak = mag
        else:
            peak *= step_down

        # Attack and recovery are both gradual, the envelope never jumps
        if peak > envelope:
            envelope *= step_up
        else:
            envelope *= step_down

        if envelope < env_min:
            envelope = env_min
        if envelope > env_max:
            envelope = env_max

        if output == OUTPUT_TABLE_DIVIDE:
            samples[i] = value / sqrt_tab[int(envelope / tab_step)]
        else:
            samples[i] = value * np.sqrt(envelope)

    state[0] = peak
    state[1] = envelope
