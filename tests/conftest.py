import os
import sys
from pathlib import Path

import pytest

# Ensure the 'src' directory is on sys.path for imports in tests
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Keep tests independent of a developer's .env
os.environ.setdefault("GUMDROP_HASH_ALGORITHM", "sha256")


@pytest.fixture
def program_id():
    # any 32 bytes serve as a program id for derivation
    return bytes([0xA7]) * 32


@pytest.fixture
def keypair():
    from gumdrop_api.crypto import ed25519_generate

    return ed25519_generate()
