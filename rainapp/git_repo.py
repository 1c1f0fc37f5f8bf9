"""
Git working copy abstraction.
Shells out to the git binary and tracks the health of the last operations.
"""
import os
import logging
import subprocess
from typing import Dict, List, Optional
from datetime import datetime

from .config import DEFAULT_REMOTE, DEFAULT_BRANCH

logger = logging.getLogger(__name__)


class GitError(Exception):
    """A git command exited with a non-zero status."""

    def __init__(self, message: str, returncode: Optional[int] = None, output: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.output = output


def run_git(args: List[str], cwd: str) -> str:
    """
    Run ``git <args>`` in cwd and return its combined output.

    Raises:
        GitError: if git is missing or exits non-zero
    """
    cmd = ["git"] + list(args)
    try:
        p = subprocess.run(cmd, cwd=cwd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
    except OSError as e:
        raise GitError(f"Cannot run {' '.join(cmd)}: {e}") from e

    if p.stdout:
        logger.debug(f"[GIT] {p.stdout.rstrip()}")
    if p.returncode != 0:
        raise GitError(
            f"Command failed ({p.returncode}): {' '.join(cmd)}",
            returncode=p.returncode,
            output=p.stdout or "",
        )
    return p.stdout or ""


class GitRepository:
    """
    Local working copy of the repository that receives the status commits.
    """

    def __init__(self, url: str, path: str, remote: str = DEFAULT_REMOTE,
                 branch: str = DEFAULT_BRANCH):
        self.url = url
        self.path = path
        self.remote = remote
        self.branch = branch

        self.consecutive_errors = 0
        self.last_error: Optional[str] = None
        self.last_error_time: Optional[datetime] = None
        self.last_success_time: Optional[datetime] = None

    def _git(self, *args: str, cwd: Optional[str] = None) -> str:
        try:
            output = run_git(list(args), cwd or self.path)
        except GitError as e:
            self.consecutive_errors += 1
            self.last_error = str(e)
            self.last_error_time = datetime.now()
            raise
        self.consecutive_errors = 0
        self.last_success_time = datetime.now()
        return output

    # ------------------------------------------------------------------------
    # Bootstrap
    # ------------------------------------------------------------------------

    def ensure_present(self):
        """Pull if the working copy exists, otherwise clone it."""
        if os.path.exists(self.path):
            self.pull()
        else:
            self.clone()

    def clone(self):
        parent = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(parent, exist_ok=True)
        logger.info(f"[GIT] Cloning {self.url} into {self.path}")
        self._git("clone", self.url, self.path, cwd=parent)

    def pull(self):
        logger.info(f"[GIT] Pulling {self.remote}/{self.branch} in {self.path}")
        self._git("pull", self.remote, self.branch)

    # ------------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------------

    def write_file(self, name: str, content: str):
        """Overwrite a file at the root of the working copy."""
        with open(os.path.join(self.path, name), "w", encoding="utf-8") as f:
            f.write(content)

    def has_changes(self) -> bool:
        return self._git("status", "--porcelain").strip() != ""

    def commit_all(self, message: str) -> bool:
        """
        Stage every change in the working copy and commit it.

        Returns False without committing when the tree is clean, e.g. when
        a previous attempt committed but failed to push.
        """
        self._git("add", "-A")
        if not self.has_changes():
            logger.info("[GIT] No changes to commit")
            return False
        self._git("commit", "-m", message)
        return True

    def push(self):
        self._git("push", self.remote, self.branch)

    def get_status(self) -> Dict:
        """Get working copy health status for monitoring."""
        return {
            "path": self.path,
            "remote": self.remote,
            "branch": self.branch,
            "consecutive_errors": self.consecutive_errors,
            "last_error": self.last_error,
            "last_error_time": self.last_error_time.isoformat() if self.last_error_time else None,
            "last_success_time": self.last_success_time.isoformat() if self.last_success_time else None,
        }
