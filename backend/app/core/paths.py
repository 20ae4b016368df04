"""
Filesystem locations.

The rate card and bill history live in one JSON document under the
project's data directory. PROJECT_ROOT may be overridden from the
environment when the backend runs from an installed package.
"""

import os
from pathlib import Path

PROJECT_ROOT = Path(os.environ.get("PROJECT_ROOT") or Path(__file__).resolve().parents[3])

DATA_DIR = PROJECT_ROOT / "data"
HISTORY_FILE = DATA_DIR / "history.json"
