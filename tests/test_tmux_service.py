"""Tests for TmuxService."""

import asyncio
import unittest
from unittest.mock import AsyncMock, Mock, patch

from wtt.services.tmux_service import SORT_TEMP_START_INDEX, TmuxService, TmuxWindow
from wtt.utils.exceptions import TmuxError


def fake_process(stdout=b"", stderr=b"", returncode=0):
    process = Mock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    return process


class TestTmuxCommands(unittest.TestCase):
    """Test cases for the subprocess layer."""

    def setUp(self):
        self.service = TmuxService(environ={})

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_is_available(self, mock_exec):
        mock_exec.return_value = fake_process(stdout=b"tmux 3.4\n")

        self.assertTrue(asyncio.run(self.service.is_available()))
        self.assertEqual(mock_exec.call_args[0][:2], ("tmux", "-V"))

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_is_available_missing_binary(self, mock_exec):
        mock_exec.side_effect = FileNotFoundError("tmux")

        self.assertFalse(asyncio.run(self.service.is_available()))

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_disabled_by_environment(self, mock_exec):
        service = TmuxService(environ={"WTT_DISABLE_TMUX": "true"})

        self.assertFalse(asyncio.run(service.is_available()))
        mock_exec.assert_not_called()

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_failure_raises_with_stderr(self, mock_exec):
        mock_exec.return_value = fake_process(stderr=b"duplicate session\n", returncode=1)

        with self.assertRaises(TmuxError) as ctx:
            asyncio.run(self.service.create_session("My App", "/repo"))

        self.assertIn("duplicate session", ctx.exception.message)
        self.assertEqual(ctx.exception.tmux_args[:4], ["new-session", "-d", "-s", "my-app"])

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_list_windows_parses_names_with_colons(self, mock_exec):
        mock_exec.return_value = fake_process(
            stdout=b"1\tfeature-1::dev\t1\n2\tfeature-2::exec\t0\n"
        )

        windows = asyncio.run(self.service.list_windows("myapp"))

        self.assertEqual(
            windows,
            [
                TmuxWindow(1, "feature-1::dev", True),
                TmuxWindow(2, "feature-2::exec", False),
            ],
        )

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_list_windows_missing_session(self, mock_exec):
        mock_exec.return_value = fake_process(stderr=b"can't find session", returncode=1)

        self.assertEqual(asyncio.run(self.service.list_windows("myapp")), [])

    @patch("asyncio.create_subprocess_exec", new_callable=AsyncMock)
    def test_is_command_running(self, mock_exec):
        mock_exec.return_value = fake_process(stdout=b"0\tfeature-1::dev\t1\n")

        self.assertTrue(
            asyncio.run(self.service.is_command_running("myapp", "feature-1::dev"))
        )
        self.assertFalse(
            asyncio.run(self.service.is_command_running("myapp", "feature-1::api"))
        )


class TestWindowManagement(unittest.TestCase):
    """Test cases for session and window orchestration."""

    def setUp(self):
        self.service = TmuxService(environ={})
        self.service._run = AsyncMock(return_value="")

    def commands(self):
        return [c.args[0] for c in self.service._run.call_args_list]

    def test_open_command_window_creates_session(self):
        self.service.session_exists = AsyncMock(return_value=False)

        asyncio.run(
            self.service.open_command_window("My App", "feature-1::dev", "/wt", "npm start")
        )

        self.assertEqual(
            self.commands(),
            [
                [
                    "new-session", "-d", "-s", "my-app",
                    "-n", "feature-1::dev", "-c", "/wt", "npm start",
                ]
            ],
        )

    def test_open_command_window_adds_window(self):
        self.service.session_exists = AsyncMock(return_value=True)

        asyncio.run(
            self.service.open_command_window("My App", "feature-1::dev", "/wt", "npm start")
        )

        self.assertEqual(self.commands()[0][:4], ["new-window", "-d", "-t", "my-app"])
        self.assertEqual(self.commands()[0][-1], "npm start")

    def test_ensure_window_renames_first_window_of_new_session(self):
        self.service.session_exists = AsyncMock(return_value=False)
        self.service.list_windows = AsyncMock(return_value=[TmuxWindow(1, "zsh")])

        asyncio.run(self.service.ensure_window("myapp", "feature-1", "/wt"))

        self.assertEqual(self.commands()[0], ["new-session", "-d", "-s", "myapp", "-c", "/wt"])
        self.assertEqual(self.commands()[1], ["rename-window", "-t", "myapp:1", "feature-1"])

    def test_sort_moves_through_temporary_indices(self):
        self.service.list_windows = AsyncMock(
            return_value=[
                TmuxWindow(1, "feature-b::dev"),
                TmuxWindow(2, "Feature-A::dev"),
                TmuxWindow(3, "feature-c::dev"),
            ]
        )

        asyncio.run(self.service.sort_windows_alphabetically("myapp"))

        moves = [(c[2], c[4]) for c in self.commands()]
        t = SORT_TEMP_START_INDEX
        self.assertEqual(
            moves,
            [
                ("myapp:1", f"myapp:{t}"),
                ("myapp:2", f"myapp:{t + 1}"),
                ("myapp:3", f"myapp:{t + 2}"),
                (f"myapp:{t + 1}", "myapp:1"),
                (f"myapp:{t}", "myapp:2"),
                (f"myapp:{t + 2}", "myapp:3"),
            ],
        )

    def test_sort_skips_sorted_session(self):
        self.service.list_windows = AsyncMock(
            return_value=[TmuxWindow(0, "a::dev"), TmuxWindow(1, "b::dev")]
        )

        asyncio.run(self.service.sort_windows_alphabetically("myapp"))

        self.service._run.assert_not_called()

    def test_close_worktree_windows(self):
        self.service.list_windows = AsyncMock(
            return_value=[
                TmuxWindow(1, "feature-1"),
                TmuxWindow(2, "feature-1::dev"),
                TmuxWindow(3, "feature-10::dev"),
                TmuxWindow(4, "feature-1::exec"),
            ]
        )

        closed = asyncio.run(self.service.close_worktree_windows("My App", "feature-1"))

        self.assertEqual(closed, 3)
        self.assertEqual(
            self.commands(),
            [
                ["kill-window", "-t", "my-app:4"],
                ["kill-window", "-t", "my-app:2"],
                ["kill-window", "-t", "my-app:1"],
            ],
        )

    def test_close_worktree_windows_without_session(self):
        self.service.list_windows = AsyncMock(return_value=[])

        self.assertEqual(
            asyncio.run(self.service.close_worktree_windows("myapp", "feature-1")), 0
        )
        self.service._run.assert_not_called()

    def test_switch_inside_tmux_uses_switch_client(self):
        service = TmuxService(environ={"TMUX": "/tmp/tmux-1000/default,1,0"})
        service._run = AsyncMock(return_value="")

        asyncio.run(service.switch_to_window("myapp", "feature-1::dev"))

        self.assertEqual(
            service._run.call_args[0][0],
            ["switch-client", "-t", "myapp:feature-1::dev"],
        )


if __name__ == "__main__":
    unittest.main()
