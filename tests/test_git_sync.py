"""Best-effort git backup of the history file."""

import asyncio
import os
import subprocess
import unittest
from unittest import mock

from utils.git_sync import GitSync, SyncWorker

CLEAN_ENV = {"PATH": os.environ.get("PATH", "")}


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


@mock.patch.dict(os.environ, CLEAN_ENV, clear=True)
class GitSyncTests(unittest.TestCase):
    def setUp(self):
        self.sync = GitSync(file_path="data/wallet-history.json", remote="origin", branch="main")

    @mock.patch("utils.git_sync.subprocess.run")
    def test_managed_host_skips_git(self, run):
        with mock.patch.dict(os.environ, {"REPL_ID": "abc"}):
            self.assertTrue(self.sync.sync_remote("msg"))
            self.assertTrue(self.sync.pull_remote())
        run.assert_not_called()

    @mock.patch("utils.git_sync.subprocess.run")
    def test_disable_flag_skips_git(self, run):
        with mock.patch.dict(os.environ, {"WALLET_TRACKER_DISABLE_GIT_SYNC": "1"}):
            self.assertTrue(self.sync.sync_remote("msg"))
        run.assert_not_called()

    @mock.patch("utils.git_sync.subprocess.run")
    def test_no_changes_no_commit(self, run):
        run.return_value = completed(stdout="")
        self.assertTrue(self.sync.sync_remote("msg"))
        run.assert_called_once()
        self.assertEqual(
            run.call_args[0][0], ["git", "status", "--porcelain", "data/wallet-history.json"]
        )

    @mock.patch("utils.git_sync.subprocess.run")
    def test_commit_and_push(self, run):
        run.side_effect = [completed(stdout=" M data/wallet-history.json\n"), completed(), completed(), completed()]
        self.assertTrue(self.sync.sync_remote("Update wallet balance: Main"))
        commands = [c[0][0] for c in run.call_args_list]
        self.assertEqual(commands[1], ["git", "add", "data/wallet-history.json"])
        self.assertEqual(commands[2][-3:], ["commit", "-m", "Update wallet balance: Main"])
        self.assertEqual(commands[3], ["git", "push", "origin", "main"])

    @mock.patch("utils.git_sync.subprocess.run")
    def test_push_failure_is_swallowed(self, run):
        run.side_effect = [
            completed(stdout=" M data/wallet-history.json\n"),
            completed(),
            completed(),
            completed(returncode=1, stderr="fatal: could not read Username"),
        ]
        self.assertFalse(self.sync.sync_remote("msg"))

    @mock.patch("utils.git_sync.subprocess.run")
    def test_timeout_and_missing_git_are_swallowed(self, run):
        run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=60)
        self.assertFalse(self.sync.sync_remote("msg"))
        run.side_effect = FileNotFoundError("git")
        self.assertFalse(self.sync.pull_remote())

    @mock.patch("utils.git_sync.subprocess.run")
    def test_pull(self, run):
        run.return_value = completed()
        self.assertTrue(self.sync.pull_remote())
        self.assertEqual(run.call_args[0][0], ["git", "pull", "origin", "main", "--no-rebase"])


class RecordingSync:
    def __init__(self):
        self.messages = []

    def sync_remote(self, message):
        self.messages.append(message)
        return True


class SyncWorkerTests(unittest.TestCase):
    def test_requests_queued_while_idle_are_coalesced(self):
        recorder = RecordingSync()

        async def scenario():
            worker = SyncWorker(recorder)
            worker.schedule("first")
            worker.schedule("second")
            worker.schedule("third")
            worker.start()
            await worker.drain()
            await worker.stop()
            return worker

        worker = asyncio.run(scenario())
        self.assertEqual(recorder.messages, ["third"])
        self.assertEqual(worker.runs, 1)
        self.assertFalse(worker.running)

    def test_crashing_sync_does_not_kill_worker(self):
        class Exploding(RecordingSync):
            def sync_remote(self, message):
                super().sync_remote(message)
                if message == "boom":
                    raise RuntimeError("boom")
                return True

        recorder = Exploding()

        async def scenario():
            worker = SyncWorker(recorder)
            worker.start()
            worker.schedule("boom")
            await worker.drain()
            worker.schedule("after")
            await worker.drain()
            await worker.stop()

        asyncio.run(scenario())
        self.assertEqual(recorder.messages, ["boom", "after"])

    def test_stop_without_start(self):
        asyncio.run(SyncWorker(RecordingSync()).stop())


if __name__ == "__main__":
    unittest.main()
