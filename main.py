"""toneparse - Neural DSP & Logic Pro preset decoder.

Run: python main.py PRESET_FILE [-f md|json]
"""

import sys
from pathlib import Path

# Ensure package is importable when running from project root
sys.path.insert(0, str(Path(__file__).parent))

from toneparse.cli_export import main


if __name__ == "__main__":
    sys.exit(main())
