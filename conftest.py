# Tests import the package as ``src.skainet``; keep the repository root on
# sys.path when pytest is started from elsewhere.
import sys
from pathlib import Path

ROOT = str(Path(__file__).parent)
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
