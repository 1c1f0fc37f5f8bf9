from __future__ import annotations

import json
from pathlib import Path

import pytest

from rainapp.state import StateStore


@pytest.fixture
def weather_payload() -> dict:
    return {
        "name": "Paris",
        "dt": 1760882700,
        "main": {"humidity": 87},
        "weather": [
            {"description": "light rain", "icon": "10d"},
            {"description": "mist", "icon": "50d"},
        ],
        "rain": {"3h": 3.0},
    }


@pytest.fixture
def state_path(tmp_path: Path) -> Path:
    return tmp_path / "state.json"


@pytest.fixture
def store(state_path: Path) -> StateStore:
    return StateStore.open(str(state_path))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "repository": "https://example.com/rain.git",
                "forkDir": "fork",
                "stateFile": "state.json",
                "OpenWeatherMapQuery": {"q": "Paris,fr", "appid": "test"},
            }
        ),
        encoding="utf-8",
    )
    return path


class FakeRepository:
    """Records publish calls; fails on the configured step."""

    def __init__(self, path: Path, fail_on: str | None = None) -> None:
        self.path = str(path)
        self.fail_on = fail_on
        self.calls: list[tuple] = []

    def _maybe_fail(self, step: str) -> None:
        from rainapp.git_repo import GitError

        if self.fail_on == step:
            raise GitError(f"{step} failed", returncode=1)

    def write_file(self, name: str, content: str) -> None:
        self.calls.append(("write", name, content))
        if self.fail_on == "write":
            raise OSError("disk full")

    def commit_all(self, message: str) -> None:
        self.calls.append(("commit", message))
        self._maybe_fail("commit")

    def push(self) -> None:
        self.calls.append(("push",))
        self._maybe_fail("push")

    def get_status(self) -> dict:
        return {"path": self.path, "consecutive_errors": 0}


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepository:
    return FakeRepository(tmp_path)
