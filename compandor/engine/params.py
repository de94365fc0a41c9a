"""Constants and parameter schema for the compandor.

Attack / recovery time constants
--------------------------------
TIA/EIA-553 (AMPS) and the NMT / TACS / C-Netz specs reference ITU-T G.162:
nominal attack time 3 ms, nominal recovery time 13.5 ms, each defined as the
time for the output to settle within 2 dB of its final value after a step
change in input level.

For a 2:1 compressor and a 12 dB input step the output moves 6 dB, so
"within 2 dB" means at least 4 dB of the 6 dB have happened (66.7%). For an
exponential response that is e^(-t/tau) = 1/3, i.e. tau = t / ln(3).

The per-sample steps are expressed as

    step = FACTOR ** (1000 / time_ms / sample_rate)

so that after `time_ms` the envelope has moved by FACTOR:

    ATTACK_FACTOR   = 3.0    envelope x3 after the attack time
    RECOVERY_FACTOR = 0.33   envelope x0.33 after the recovery time

At 8000 Hz, 3 ms / 13.5 ms give step_up ~ 1.0469 and step_down ~ 0.9899.
"""

from shared.params import ParamType as T, ParamDef, ParamSchema

SR = 8000  # narrowband channel rate used by the analog cellular networks

ATTACK_MS = 3.0
RECOVERY_MS = 13.5

ATTACK_FACTOR = 3.0
RECOVERY_FACTOR = 0.33

# Lowest envelope kept in state (-60 dB)
ENVELOPE_MIN = 0.001

# Highest compressor envelope, keeps the sqrt table index in range
ENVELOPE_MAX = 9.990

# sqrt table: TABLE_SIZE entries covering envelopes [0, 10.0) in TABLE_STEP steps
TABLE_SIZE = 10000
TABLE_STEP = 0.001

# ── Schema ────────────────────────────────────────────────────────────

_PARAMS = [
    # Timing is only cast here; Compandor.configure rejects non-positive values
    ParamDef("sample_rate", T.INT, section="channel",
             default=SR, label="Sample rate", unit="Hz"),

    ParamDef("attack_ms", T.FLOAT, section="timing",
             default=ATTACK_MS, label="Attack", unit="ms"),

    ParamDef("recovery_ms", T.FLOAT, section="timing",
             default=RECOVERY_MS, label="Recovery", unit="ms"),

    # Channel simulation only: RMS level of the additive channel noise
    ParamDef("noise_db", T.FLOAT, section="simulation",
             default=-40.0, label="Channel noise", unit="dBFS",
             range=(-120.0, 0.0)),

    ParamDef("seed", T.INT, section="simulation",
             default=42, label="Noise seed",
             range=(0, 2**31 - 1)),
]

SCHEMA = ParamSchema(_PARAMS)

PARAM_RANGES = SCHEMA.param_ranges()
PARAM_SECTIONS = SCHEMA.param_sections()


def default_params() -> dict:
    """Nominal AMPS / NMT channel: 8 kHz, 3 ms attack, 13.5 ms recovery."""
    return SCHEMA.default_params()


def validate_params(raw: dict) -> dict:
    """Overlay a raw dict (preset, CLI) on the defaults, casting and clamping.

    Only the simulation params have ranges. Timing values pass through as cast,
    so a value Compandor cannot use raises ValueError instead of being replaced.
    """
    params = default_params()
    params.update(SCHEMA.validate_and_clamp(raw))
    return params
