import sys
from pathlib import Path


def _ensure_paths():
    repo_root = Path(__file__).resolve().parents[1]
    tests_root = Path(__file__).resolve().parent
    for path in (repo_root, tests_root):
        if str(path) not in sys.path:
            sys.path.insert(0, str(path))


_ensure_paths()
