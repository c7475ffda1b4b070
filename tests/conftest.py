"""Pytest configuration for composer tests.

Ensures the project root is in sys.path so imports work correctly, and
provides in-memory fakes for the version-control and preview collaborators.
"""

import shutil
import subprocess
import sys
from pathlib import Path

import pytest

# Add project root to sys.path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from core.composer.preview import PreviewRequest, PreviewSurface  # noqa: E402
from core.composer.vcs import LogEntry, VCSError, VersionControl  # noqa: E402
from core.filesystem.local_backend import LocalVaultStore  # noqa: E402


class FakeVCS(VersionControl):
    """Records commits in memory; each commit snapshots the given files dict."""

    def __init__(self, *, repository: bool = True, files: dict[str, str] | None = None):
        self.repository = repository
        self.files = files if files is not None else {}
        self.commits: list[tuple[str, str, dict[str, str]]] = []  # (hash, message, snapshot)
        self.fail_commit: VCSError | Exception | None = None
        self.fail_log: VCSError | None = None
        self.calls: list[str] = []

    async def is_repository(self, root):
        self.calls.append("is_repository")
        return self.repository

    async def commit_all(self, root, message, *, allow_empty=True):
        self.calls.append("commit_all")
        if not self.repository:
            raise VCSError("fatal: not a git repository")
        if self.fail_commit is not None:
            raise self.fail_commit
        commit_hash = f"{len(self.commits) + 1:040x}"
        self.commits.append((commit_hash, message, dict(self.files)))

    async def head(self, root):
        if not self.commits:
            raise VCSError("fatal: ambiguous argument 'HEAD'")
        return self.commits[-1][0]

    async def log(self, root, tag_filter, limit):
        if self.fail_log is not None:
            raise self.fail_log
        matching = [c for c in reversed(self.commits) if tag_filter in c[1]]
        return [LogEntry(hash=h, relative_time="1 minute ago", subject=m) for h, m, _ in matching[:limit]]

    async def show_subject(self, root, ref):
        if not self.repository:
            raise VCSError("fatal: not a git repository")
        for commit_hash, message, _ in self.commits:
            if commit_hash == ref:
                return message
        raise VCSError(f"fatal: bad revision '{ref}'")

    async def checkout_path(self, root, commit_ref, path):
        parent = commit_ref.endswith("^")
        ref = commit_ref.rstrip("^")
        for index, (commit_hash, _, snapshot) in enumerate(self.commits):
            if commit_hash == ref:
                if parent:
                    if index == 0:
                        raise VCSError(f"fatal: invalid reference: {commit_ref}")
                    snapshot = self.commits[index - 1][2]
                if path not in snapshot:
                    raise VCSError(
                        "git checkout failed",
                        stderr=f"error: pathspec '{path}' did not match any file(s) known to git",
                    )
                target = Path(root) / path
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(snapshot[path], encoding="utf-8")
                return
        raise VCSError(f"fatal: bad revision '{commit_ref}'")


class FakeSurface(PreviewSurface):
    """Captures requests; optionally answers immediately."""

    def __init__(self, answer=None, *, auto_answer: bool = True, fail: bool = False):
        self.answer = answer
        self.auto_answer = auto_answer
        self.fail = fail
        self.requests: list[PreviewRequest] = []
        self.dismissed: list[PreviewRequest] = []

    def show(self, request: PreviewRequest) -> None:
        if self.fail:
            raise RuntimeError("surface unavailable")
        self.requests.append(request)
        if self.auto_answer:
            request.on_decision(self.answer)

    def dismiss(self, request: PreviewRequest) -> None:
        self.dismissed.append(request)


@pytest.fixture
def vault(tmp_path):
    return LocalVaultStore(tmp_path / "vault")


@pytest.fixture
def fake_vcs():
    return FakeVCS()


@pytest.fixture
def fake_surface_factory():
    return FakeSurface


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not available")


def init_git_repo(root: Path) -> None:
    root.mkdir(parents=True, exist_ok=True)
    for args in (
        ["init", "-q"],
        ["config", "user.email", "composer@example.com"],
        ["config", "user.name", "Composer Tests"],
        ["config", "commit.gpgsign", "false"],
    ):
        subprocess.run(["git", *args], cwd=root, check=True, capture_output=True)


@pytest.fixture
def git_vault(tmp_path):
    if shutil.which("git") is None:
        pytest.skip("git binary not available")
    root = tmp_path / "git-vault"
    init_git_repo(root)
    return LocalVaultStore(root)
