import shutil
import subprocess
from pathlib import Path

import pytest

from rainapp import git_repo
from rainapp.git_repo import GitError, GitRepository
from rainapp.scheduler import commit_rain
from rainapp.state import StateStore

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available")


class RecordingRun:
    def __init__(self, returncode: int = 0) -> None:
        self.returncode = returncode
        self.calls = []

    def __call__(self, cmd, cwd=None, **kwargs):
        self.calls.append((cmd, cwd))
        return subprocess.CompletedProcess(cmd, self.returncode, stdout="output\n")


@pytest.fixture
def recorder(monkeypatch) -> RecordingRun:
    run = RecordingRun()
    monkeypatch.setattr(git_repo.subprocess, "run", run)
    return run


def test_missing_working_copy_is_cloned(tmp_path: Path, recorder: RecordingRun) -> None:
    fork = tmp_path / "fork"
    repo = GitRepository("https://example.com/rain.git", str(fork))

    repo.ensure_present()

    assert recorder.calls == [
        (["git", "clone", "https://example.com/rain.git", str(fork)], str(tmp_path)),
    ]


def test_existing_working_copy_is_pulled(tmp_path: Path, recorder: RecordingRun) -> None:
    fork = tmp_path / "fork"
    fork.mkdir()
    repo = GitRepository("https://example.com/rain.git", str(fork), branch="main")

    repo.ensure_present()

    assert recorder.calls == [(["git", "pull", "origin", "main"], str(fork))]


def test_commit_all_stages_then_commits(tmp_path: Path, recorder: RecordingRun) -> None:
    repo = GitRepository("url", str(tmp_path))

    repo.commit_all("💧💧  light rain")
    repo.push()

    assert [cmd for cmd, _ in recorder.calls] == [
        ["git", "add", "-A"],
        ["git", "status", "--porcelain"],
        ["git", "commit", "-m", "💧💧  light rain"],
        ["git", "push", "origin", "master"],
    ]


def test_non_zero_exit_raises_and_is_tracked(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setattr(git_repo.subprocess, "run", RecordingRun(returncode=128))
    repo = GitRepository("url", str(tmp_path))

    with pytest.raises(GitError) as excinfo:
        repo.push()

    assert excinfo.value.returncode == 128
    status = repo.get_status()
    assert status["consecutive_errors"] == 1
    assert "push" in status["last_error"]


def test_missing_git_binary_raises_git_error(tmp_path: Path, monkeypatch) -> None:
    def no_git(*args, **kwargs):
        raise FileNotFoundError("git")

    monkeypatch.setattr(git_repo.subprocess, "run", no_git)

    with pytest.raises(GitError):
        GitRepository("url", str(tmp_path)).pull()


def test_write_file_overwrites_document(tmp_path: Path) -> None:
    (tmp_path / "README.md").write_text("old", encoding="utf-8")
    repo = GitRepository("url", str(tmp_path))

    repo.write_file("README.md", "# new\n")

    assert (tmp_path / "README.md").read_text(encoding="utf-8") == "# new\n"


def _git(cwd: Path, *args: str) -> str:
    p = subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True, encoding="utf-8")
    return p.stdout


@requires_git
def test_clean_tree_skips_commit(tmp_path: Path) -> None:
    _git(tmp_path, "init")
    repo = GitRepository("url", str(tmp_path))

    assert repo.commit_all("nothing here") is False
    assert repo.consecutive_errors == 0


@requires_git
def test_retry_after_failed_push_still_pushes(tmp_path: Path, weather_payload: dict) -> None:
    remote = tmp_path / "remote.git"
    _git(tmp_path, "init", "--bare", str(remote))
    fork = tmp_path / "fork"
    repo = GitRepository(str(remote), str(fork), remote="nosuchremote")
    repo.ensure_present()
    _git(fork, "symbolic-ref", "HEAD", "refs/heads/master")
    _git(fork, "config", "user.email", "rain@example.com")
    _git(fork, "config", "user.name", "Rain")
    _git(fork, "config", "commit.gpgsign", "false")

    store = StateStore(str(tmp_path / "state.json"), {
        "weather": weather_payload,
        "totalRain": 3,
        "timeLastFetch": 0,
        "timeLastCommit": 0,
    })

    assert commit_rain(store, repo) is None
    assert store.get_state()["totalRain"] == 3

    repo.remote = "origin"
    assert commit_rain(store, repo) is not None
    assert store.get_state()["totalRain"] == 2

    pushed = _git(tmp_path, "--git-dir", str(remote), "log", "--format=%s", "master")
    assert pushed.splitlines() == ["💧💧💧  light rain"]
