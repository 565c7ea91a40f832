"""
Root conftest to ensure proper import paths.

The project uses a flat layout (config.py, core/, ui/, utils/ at the root),
so the root has to be on sys.path before pytest collects tests/.
"""

import sys
from pathlib import Path

ROOT = Path(__file__).parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
