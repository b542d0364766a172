# -*- coding: utf-8 -*-
"""
Git-backed sync of the wallet-history file.

The history file lives in the repository, so committing and pushing it is how
balances survive redeploys. Sync never fails a caller: every git problem is
logged and reported as False. On managed hosts (REPL_ID set) or when
WALLET_TRACKER_DISABLE_GIT_SYNC is set, sync is skipped entirely.
"""

import asyncio
import os
import subprocess
from typing import List, Optional

from config.constants import (
    GIT_AUTHOR_EMAIL,
    GIT_AUTHOR_NAME,
    GIT_BRANCH,
    GIT_COMMAND_TIMEOUT_SECONDS,
    GIT_REMOTE,
    GIT_SYNC_DISABLE_ENV,
    MANAGED_HOST_ENV_MARKERS,
    WALLET_HISTORY_FILE,
)
from utils.helpers import print_error, print_info, print_success, print_warning
from wallets.errors import SyncFailureError

TAG = "GitSync"


def sync_disabled() -> bool:
    """Checked on every call so the environment can change at runtime."""
    if any(os.environ.get(marker) for marker in MANAGED_HOST_ENV_MARKERS):
        return True
    return os.environ.get(GIT_SYNC_DISABLE_ENV, "").strip().lower() in ("1", "true", "yes")


class GitSync:
    def __init__(
        self,
        file_path: str = WALLET_HISTORY_FILE,
        remote: str = GIT_REMOTE,
        branch: str = GIT_BRANCH,
        cwd: Optional[str] = None,
        timeout: float = GIT_COMMAND_TIMEOUT_SECONDS,
    ):
        self.file_path = file_path
        self.remote = remote
        self.branch = branch
        self.cwd = cwd
        self.timeout = timeout

    def _git(self, *args: str) -> str:
        cmd: List[str] = ["git", *args]
        try:
            result = subprocess.run(
                cmd, cwd=self.cwd, capture_output=True, text=True, timeout=self.timeout
            )
        except subprocess.TimeoutExpired as e:
            raise SyncFailureError(f"'{' '.join(cmd)}' timed out after {self.timeout:.0f}s") from e
        except OSError as e:
            raise SyncFailureError(f"Could not run git: {e}") from e
        if result.returncode != 0:
            detail = (result.stderr or result.stdout or "").strip()
            raise SyncFailureError(f"'{' '.join(cmd)}' failed: {detail}")
        return result.stdout

    def has_changes(self) -> bool:
        return bool(self._git("status", "--porcelain", self.file_path).strip())

    def sync_remote(self, message: str = "Update wallet history") -> bool:
        """Commits and pushes the history file if it changed."""
        if sync_disabled():
            print_info("Managed host detected, skipping git sync", tag=TAG)
            return True
        try:
            if not self.has_changes():
                return True
            self._git("add", self.file_path)
            self._git(
                "-c", f"user.name={GIT_AUTHOR_NAME}",
                "-c", f"user.email={GIT_AUTHOR_EMAIL}",
                "commit", "-m", message,
            )
            self._git("push", self.remote, self.branch)
        except SyncFailureError as e:
            print_error(f"Sync failed: {e}", tag=TAG)
            return False
        print_success(f"Wallet history pushed to {self.remote}/{self.branch}", tag=TAG)
        return True

    def pull_remote(self) -> bool:
        """Fetches history written by other deployments. Run once at startup."""
        if sync_disabled():
            print_info("Managed host detected, skipping git pull", tag=TAG)
            return True
        try:
            self._git("pull", self.remote, self.branch, "--no-rebase")
        except SyncFailureError as e:
            print_warning(f"Pull failed, continuing with local history: {e}", tag=TAG)
            return False
        print_info(f"Pulled wallet history from {self.remote}/{self.branch}", tag=TAG)
        return True


class SyncWorker:
    """
    Runs sync_remote off the request path.

    schedule() only enqueues. Requests that pile up while a sync is running
    are coalesced into one run that uses the newest message.
    """

    def __init__(self, git_sync: GitSync):
        self.git_sync = git_sync
        self._queue: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._run())

    def schedule(self, message: str = "Update wallet history") -> None:
        self._queue.put_nowait(message)

    async def drain(self) -> None:
        """Waits until every scheduled sync has been handled."""
        await self._queue.join()

    async def stop(self) -> None:
        """Finishes pending syncs, then stops the worker."""
        if not self.running:
            return
        self._queue.put_nowait(None)
        await self._task
        self._task = None

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            batch = 1
            stop = message is None
            while not self._queue.empty():
                queued = self._queue.get_nowait()
                batch += 1
                if queued is None:
                    stop = True
                else:
                    message = queued

            try:
                if message is not None:
                    self.runs += 1
                    await asyncio.to_thread(self.git_sync.sync_remote, message)
            except Exception as e:
                print_error(f"Background sync crashed: {e}", tag=TAG)
            finally:
                for _ in range(batch):
                    self._queue.task_done()

            if stop:
                return
