"""Git implementation of the version-control collaborator.

Every call is an asyncio subprocess bounded by ``timeout`` seconds.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from core.composer.vcs import LogEntry, VCSError, VersionControl

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 10.0
_LOG_FORMAT = "%H|%ar|%s"


@dataclass
class GitResult:
    """Result of one git invocation."""

    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        if self.stderr:
            return f"{self.stdout}\n{self.stderr}".strip()
        return self.stdout.strip()


class GitVersionControl(VersionControl):
    """Shells out to the ``git`` binary."""

    def __init__(self, timeout: float = DEFAULT_GIT_TIMEOUT, git_binary: str = "git"):
        self.timeout = timeout
        self.git_binary = git_binary

    async def _run_git(self, root: Path, *args: str) -> GitResult:
        try:
            proc = await asyncio.create_subprocess_exec(
                self.git_binary,
                *args,
                cwd=str(root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, NotADirectoryError) as e:
            raise VCSError(f"Cannot run {self.git_binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except TimeoutError:
            proc.kill()
            await proc.wait()
            return GitResult(exit_code=-1, stdout="", stderr=f"git {args[0]} timed out after {self.timeout}s", timed_out=True)

        return GitResult(
            exit_code=proc.returncode if proc.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def _check(self, root: Path, *args: str) -> GitResult:
        result = await self._run_git(root, *args)
        if not result.success:
            raise VCSError(
                f"git {' '.join(args[:2])} failed: {result.output}",
                stderr=result.stderr,
                timed_out=result.timed_out,
            )
        return result

    @staticmethod
    def _safe_ref(ref: str) -> str:
        ref = ref.strip()
        if not ref or ref.startswith("-"):
            raise VCSError(f"Invalid commit reference: {ref!r}")
        return ref

    async def is_repository(self, root: Path) -> bool:
        try:
            result = await self._run_git(root, "rev-parse", "--is-inside-work-tree")
        except VCSError:
            return False
        return result.success and result.stdout.strip() == "true"

    async def commit_all(self, root: Path, message: str, *, allow_empty: bool = True) -> None:
        await self._check(root, "add", "-A")
        args = ["commit", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        await self._check(root, *args)

    async def head(self, root: Path) -> str:
        result = await self._check(root, "rev-parse", "HEAD")
        return result.stdout.strip()

    async def log(self, root: Path, tag_filter: str, limit: int) -> list[LogEntry]:
        result = await self._check(
            root,
            "log",
            "--fixed-strings",
            f"--grep={tag_filter}",
            f"--max-count={limit}",
            f"--format={_LOG_FORMAT}",
        )
        entries = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            commit_hash, _, rest = line.partition("|")
            relative_time, _, subject = rest.partition("|")
            entries.append(LogEntry(hash=commit_hash.strip(), relative_time=relative_time.strip(), subject=subject))
        return entries

    async def show_subject(self, root: Path, ref: str) -> str:
        result = await self._check(root, "log", "-1", "--format=%s", self._safe_ref(ref))
        return result.stdout.strip()

    async def checkout_path(self, root: Path, commit_ref: str, path: str) -> None:
        await self._check(root, "checkout", self._safe_ref(commit_ref), "--", path)


__all__ = ["DEFAULT_GIT_TIMEOUT", "GitResult", "GitVersionControl"]
