"""Clone or update the git checkout that provides the markdown corpus."""

from __future__ import annotations

import asyncio
from asyncio.subprocess import PIPE
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import shutil
from time import perf_counter


logger = logging.getLogger(__name__)


class GitSyncError(RuntimeError):
    """Raised when git operations fail during synchronization."""


@dataclass(slots=True)
class GitSourceConfig:
    """Where the corpus comes from.

    Attributes:
        repo_url: Git repository URL (https or ssh).
        branch: Branch to track. Detected from the checkout when None.
        shallow_clone: Clone with `--depth 1`.
        timeout_seconds: Upper bound for a single git command.
    """

    repo_url: str
    branch: str | None = None
    shallow_clone: bool = True
    timeout_seconds: float = 300.0


@dataclass(slots=True)
class GitSyncResult:
    """Summary data emitted after a synchronization cycle."""

    action: str
    commit_id: str | None
    duration_seconds: float
    repo_updated: bool
    warnings: list[str] = field(default_factory=list)


class CorpusRepoSyncer:
    """Keeps `repo_path` populated with a checkout of the corpus repository."""

    def __init__(
        self,
        config: GitSourceConfig,
        repo_path: Path | str,
        logger_instance: logging.Logger | None = None,
    ) -> None:
        self.config = config
        self.repo_path = Path(repo_path)
        self.repo_parent = self.repo_path.parent
        self._lock = asyncio.Lock()
        self._logger = logger_instance or logger

    async def ensure(self, auto_update: bool = False) -> GitSyncResult:
        """Clone when the corpus directory is missing, optionally update it otherwise.

        Clone failures raise `GitSyncError`; there is nothing to serve without
        them. Update failures are logged and reported as warnings so the
        existing checkout keeps serving.
        """
        async with self._lock:
            start = perf_counter()
            if not self.repo_path.exists():
                await self._clone_repository()
                commit_id = await self._safe_rev_parse("HEAD")
                return self._result("clone", commit_id, start, repo_updated=True)

            if not auto_update:
                return self._result("none", None, start, repo_updated=False)

            try:
                return await self._update_locked(start)
            except GitSyncError as exc:
                self._logger.warning("Corpus update failed, keeping existing documents: %s", exc)
                return self._result("update", None, start, repo_updated=False, warnings=[str(exc)])

    async def update(self) -> GitSyncResult:
        """Force the checkout to the remote head of the tracked branch."""
        async with self._lock:
            return await self._update_locked(perf_counter())

    async def _update_locked(self, start: float) -> GitSyncResult:
        if not (self.repo_path / ".git").exists():
            raise GitSyncError(f"{self.repo_path} is not a git checkout")

        before = await self._safe_rev_parse("HEAD")
        await self._run_git("fetch", "--all")
        branch = self.config.branch or await self.default_branch()
        await self._run_git("reset", "--hard", f"origin/{branch}")

        warnings: list[str] = []
        try:
            await self._run_git("clean", "-fd")
        except GitSyncError as exc:
            self._logger.warning("git clean failed: %s", exc)
            warnings.append(str(exc))

        after = await self._safe_rev_parse("HEAD")
        return self._result("update", after, start, repo_updated=before != after, warnings=warnings)

    async def default_branch(self) -> str:
        """Upstream of the current branch, else origin/main, else origin/master, else main."""
        try:
            upstream = (
                await self._run_git("rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}")
            ).strip()
        except GitSyncError:
            upstream = ""
        remote, _, branch = upstream.partition("/")
        if remote and branch:
            return branch

        for candidate in ("main", "master"):
            try:
                await self._run_git("rev-parse", "--verify", f"origin/{candidate}")
            except GitSyncError:
                continue
            return candidate
        return "main"

    async def _clone_repository(self) -> None:
        self.repo_parent.mkdir(parents=True, exist_ok=True)
        args: list[str] = ["clone"]
        if self.config.shallow_clone:
            args += ["--depth", "1"]
        if self.config.branch:
            args += ["--branch", self.config.branch]
        args += [self.config.repo_url, str(self.repo_path)]

        self._logger.info("Cloning corpus from %s into %s", self.config.repo_url, self.repo_path)
        try:
            await self._run_git(*args, use_repo=False)
        except GitSyncError:
            if self.repo_path.exists():
                await asyncio.to_thread(shutil.rmtree, self.repo_path, True)
            raise

    def _result(
        self,
        action: str,
        commit_id: str | None,
        start: float,
        *,
        repo_updated: bool,
        warnings: list[str] | None = None,
    ) -> GitSyncResult:
        duration = perf_counter() - start
        if action != "none":
            self._logger.info(
                "Git sync complete: action=%s commit=%s duration=%.2fs updated=%s",
                action,
                commit_id,
                duration,
                repo_updated,
            )
        return GitSyncResult(
            action=action,
            commit_id=commit_id,
            duration_seconds=duration,
            repo_updated=repo_updated,
            warnings=warnings or [],
        )

    async def _safe_rev_parse(self, ref: str) -> str | None:
        try:
            return (await self._run_git("rev-parse", ref)).strip()
        except GitSyncError:
            return None

    async def _run_git(self, *args: str, use_repo: bool = True) -> str:
        cmd = ["git", *args]
        working_dir = self.repo_path if use_repo else self.repo_parent
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd, cwd=str(working_dir), env=env, stdout=PIPE, stderr=PIPE
            )
        except FileNotFoundError as err:
            raise GitSyncError("git executable not found") from err

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError as err:
            process.kill()
            await process.wait()
            raise GitSyncError(f"git command timed out ({' '.join(cmd)})") from err

        if process.returncode != 0:
            stderr_text = stderr.decode(errors="replace").strip()
            stdout_text = stdout.decode(errors="replace").strip()
            detail = stderr_text or stdout_text or "unknown error"
            raise GitSyncError(f"git command failed ({' '.join(cmd)}): {detail}")

        return stdout.decode(errors="replace")
