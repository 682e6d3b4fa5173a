import sys
import threading
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from rhyme_lines.core.database import parse_rhyme_db_payload
from rhyme_lines.utils.telemetry import RhymeTelemetry
from rhyme_lines.worker.singleton import reset_rhyme_client


SAMPLE_DB = {
    "version": 2,
    "generatedAt": "2024-01-01T00:00:00+00:00",
    "source": {"name": "cmudict", "path": "tests"},
    "rhymes": {
        "time": ["rhyme", "climb", "prime", "dime", "haim", "rhyme", "time", "Lime!"],
        "night": ["light", "fight", "right", "sight", "bright", "flight"],
        "love": ["above", "dove", "glove", "of"],
        "fire": ["desire", "higher", "wire"],
    },
    "flags": {"haim": "proper", "beim": "foreign"},
}


class FakeFetch:
    """Fetcher double that counts calls and can block until released."""

    def __init__(self, payload=None, *, error=None, gated=False):
        self.payload = payload if payload is not None else SAMPLE_DB
        self.error = error
        self.calls = []
        self.release = threading.Event()
        self.started = threading.Event()
        if not gated:
            self.release.set()

    def __call__(self, url, timeout):
        self.calls.append(url)
        self.started.set()
        self.release.wait(5.0)
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture
def sample_payload():
    return {
        **SAMPLE_DB,
        "rhymes": {key: list(value) for key, value in SAMPLE_DB["rhymes"].items()},
        "flags": dict(SAMPLE_DB["flags"]),
    }


@pytest.fixture
def sample_db(sample_payload):
    return parse_rhyme_db_payload(sample_payload, expected_version=2)


@pytest.fixture
def telemetry():
    return RhymeTelemetry()


@pytest.fixture
def fake_fetch_factory():
    return FakeFetch


@pytest.fixture(autouse=True)
def _reset_shared_client():
    yield
    reset_rhyme_client()
