import json
from pathlib import Path

import pytest


@pytest.fixture
def sample_config_dict() -> dict:
    return json.loads(Path("sample_config.json").read_text(encoding="utf-8"))


@pytest.fixture
def sample_snapshot_dict() -> dict:
    return json.loads(Path("sample_snapshot.json").read_text(encoding="utf-8"))
