import json
import sys
from pathlib import Path

import pytest


# Ensure backend/src is on sys.path for tests so that imports like `services.*` work.
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@pytest.fixture
def data_dir(tmp_path):
    """Factory writing featured/town JSON files into a temp directory; returns the directory."""

    def _write(featured=None, towns=None):
        if featured is not None:
            target = tmp_path / "featured-restaurants.json"
            if isinstance(featured, bytes):
                target.write_bytes(featured)
            elif isinstance(featured, str):
                target.write_text(featured, encoding="utf-8")
            else:
                target.write_text(json.dumps(featured), encoding="utf-8")
        for filename, payload in (towns or {}).items():
            target = tmp_path / filename
            if isinstance(payload, bytes):
                target.write_bytes(payload)
            elif isinstance(payload, str):
                target.write_text(payload, encoding="utf-8")
            else:
                target.write_text(json.dumps(payload), encoding="utf-8")
        return tmp_path

    return _write
