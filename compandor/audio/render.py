"""Offline WAV rendering for the compandor.

Usage:
    python -m compandor.audio.render compress input.wav output.wav [--preset preset.json]
    python -m compandor.audio.render expand input.wav output.wav [--attack-ms 3] [--recovery-ms 13.5]
    python -m compandor.audio.render roundtrip input.wav output.wav
    python -m compandor.audio.render channel input.wav output.wav [--noise-db -40] [--plain plain.wav]

The sample rate comes from the input file. Compressed audio can exceed full
scale on transients; use --float to keep it unclipped for a later expand.
"""

import argparse
import json
import logging
import sys

from compandor.engine.chain import MODES, DEFAULT_CHUNK, render_compandor, simulate_channel
from compandor.engine.params import SCHEMA, validate_params
from shared.analysis import rms_db, peak_db
from shared.audio import load_wav, save_wav

log = logging.getLogger(__name__)


def load_preset(path):
    with open(path) as f:
        preset = json.load(f)
    if not isinstance(preset, dict):
        raise ValueError(f"preset {path} must be a JSON object")
    return preset


def build_parser():
    parser = argparse.ArgumentParser(description="Compandor offline renderer")
    parser.add_argument("mode", choices=list(MODES) + ["channel"])
    parser.add_argument("input", help="Input WAV file")
    parser.add_argument("output", help="Output WAV file")
    parser.add_argument("--preset", help="Preset JSON file")
    for key, kind in (("attack_ms", float), ("recovery_ms", float),
                      ("noise_db", float), ("seed", int)):
        p = SCHEMA.get(key)
        unit = f" ({p.unit})" if p.unit else ""
        parser.add_argument("--" + key.replace("_", "-"), type=kind,
                            help=f"{p.label}{unit}, default {p.default}")
    parser.add_argument("--plain", help="Also write the uncompanded noisy channel (channel mode)")
    parser.add_argument("--chunk-size", type=int, default=DEFAULT_CHUNK)
    parser.add_argument("--float", dest="as_float", action="store_true",
                        help="Write 32-bit float WAV instead of 16-bit")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def render(args):
    raw = load_preset(args.preset) if args.preset else {}
    for key in ("attack_ms", "recovery_ms", "noise_db", "seed"):
        value = getattr(args, key)
        if value is not None:
            raw[key] = value

    audio, sr = load_wav(args.input)
    raw["sample_rate"] = sr
    params = validate_params(raw)
    n = audio.shape[0]
    ch = "mono" if audio.ndim == 1 else f"{audio.shape[1]} channels"
    print(f"Loaded {args.input}: {n} samples, {sr} Hz, {ch}, {rms_db(audio):.1f} dBFS RMS")

    if args.mode == "channel":
        result = simulate_channel(audio, params)
        output = result["companded"]
        print(f"Channel noise {params['noise_db']:.1f} dBFS: idle noise "
              f"{result['idle_noise_plain_db']:.1f} -> {result['idle_noise_companded_db']:.1f} dBFS "
              f"({result['idle_noise_reduction_db']:.1f} dB quieter)")
        if args.plain:
            save_wav(args.plain, result["plain"], sr, as_float=args.as_float)
            print(f"Saved {args.plain}")
    else:
        output = render_compandor(audio, params, args.mode, chunk_size=args.chunk_size)

    if not args.as_float and peak_db(output) > 0.0:
        print(f"Warning: output peaks at {peak_db(output):+.1f} dBFS and will clip; use --float")
    save_wav(args.output, output, sr, as_float=args.as_float)
    print(f"Saved {args.output} ({rms_db(output):.1f} dBFS RMS)")


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(name)s %(levelname)s: %(message)s")
    try:
        render(args)
    except (OSError, ValueError) as e:
        log.debug("render failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
