#!/usr/bin/env python3
"""Launch the compandor renderer from the project root.

Usage:
    uv run python main.py compress input.wav output.wav
    uv run python main.py channel input.wav output.wav --noise-db -35
"""

import sys

if __name__ == "__main__":
    from compandor.audio.render import main
    sys.exit(main())
