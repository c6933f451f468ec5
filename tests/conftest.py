from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class ScriptedRandom:
    """Stands in for random.Random, replaying fixed randrange() results."""

    def __init__(self, *values: int) -> None:
        self.values = list(values)
        self.calls: list[int] = []

    def randrange(self, stop: int) -> int:
        self.calls.append(stop)
        if not self.values:
            raise AssertionError(f"unexpected randrange({stop}) draw")
        value = self.values.pop(0)
        assert 0 <= value < stop
        return value


@pytest.fixture()
def scripted_random():
    return ScriptedRandom


@pytest.fixture()
def sample_tree() -> dict:
    return {
        "layers": [
            {"start": "-2,0,-2", "end": "2,0,2", "contents": 1},
            {"start": "0,1,0", "end": "0,1,0", "contents": "house"},
        ],
        "structures": {
            "house": {
                "0,0,0": 4,
                "1,0,0": {"50%": 5, "50%_alt": "pillar"},
                "0,0,1": {"100%": 0},
            },
            "pillar": {"0,0,0": 7, "0,1,0": 7},
        },
        "areas": {
            "yard": {"start": "0,0,0", "end": "2,0,0"},
            "roof": {"start": "-1,2,-1", "end": "1,3,1"},
        },
    }


@pytest.fixture()
def config_file(tmp_path: Path, sample_tree: dict) -> Path:
    path = tmp_path / "config.json"
    path.write_text(json.dumps(sample_tree), encoding="utf-8")
    return path
