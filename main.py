#!/usr/bin/env python3
"""
sona: run from a source checkout without installing.

    python3 main.py transcribe ./audio.mp3
    python3 main.py transcribe "https://youtube.com/watch?v=..." --output ./transcript.txt
"""

import sys
from pathlib import Path

# ── Determine project root ────────────────────────────────────────────
PROJECT_ROOT = Path(__file__).resolve().parent

if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from sona.cli.main import main  # noqa: E402

if __name__ == "__main__":
    main()
