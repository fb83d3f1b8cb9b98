"""Tests for the Git service."""

import subprocess
import unittest
from unittest.mock import Mock, patch

from wtt.services.git_service import GitService
from wtt.utils.exceptions import GitError, ValidationError


def completed(returncode=0, stdout="", stderr=""):
    result = Mock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


class TestGitService(unittest.TestCase):
    """Test cases for GitService."""

    def setUp(self):
        """Set up test fixtures."""
        self.git_service = GitService(timeout=5)

    def test_initialization(self):
        """Test service initialization."""
        self.assertFalse(self.git_service.is_initialized())
        self.assertEqual(self.git_service.timeout, 5)
        self.assertEqual(self.git_service._git_executable, "git")

    @patch("subprocess.run")
    def test_git_command_execution_success(self, mock_run):
        """Test successful Git command execution."""
        mock_run.return_value = completed(stdout="git version 2.39.0")

        result = self.git_service._run_git_command(["--version"], cwd=".")

        self.assertTrue(result.success)
        self.assertEqual(result.output, "git version 2.39.0")
        self.assertEqual(result.error, "")
        self.assertEqual(result.exit_code, 0)

    @patch("subprocess.run")
    def test_git_command_execution_failure(self, mock_run):
        """Test failed Git command execution."""
        mock_run.return_value = completed(128, stderr="fatal: not a git repository")

        result = self.git_service._run_git_command(["status"], cwd=".")

        self.assertFalse(result.success)
        self.assertEqual(result.error, "fatal: not a git repository")
        self.assertEqual(result.exit_code, 128)

    @patch("subprocess.run")
    def test_git_command_timeout(self, mock_run):
        """A timeout is reported as a GitError."""
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=5)

        with self.assertRaises(GitError) as ctx:
            self.git_service._run_git_command(["fetch"], cwd=".")
        self.assertIn("timed out", ctx.exception.message)

    @patch("subprocess.run")
    def test_initialize_marks_service_ready(self, mock_run):
        mock_run.return_value = completed(stdout="git version 2.39.0")

        self.git_service.initialize()

        self.assertTrue(self.git_service.is_initialized())

    def test_parse_worktree_list_empty(self):
        """Test parsing empty worktree list."""
        self.assertEqual(self.git_service._parse_worktree_list(""), [])

    def test_parse_worktree_list_single_worktree(self):
        """Test parsing single worktree."""
        output = """worktree /path/to/repo
HEAD abcd1234
branch refs/heads/main
"""
        result = self.git_service._parse_worktree_list(output)

        self.assertEqual(len(result), 1)
        worktree = result[0]
        self.assertEqual(worktree.path, "/path/to/repo")
        self.assertEqual(worktree.commit, "abcd1234")
        self.assertEqual(worktree.branch, "main")
        self.assertTrue(worktree.is_main)
        self.assertFalse(worktree.is_locked)

    def test_parse_worktree_list_multiple_worktrees(self):
        """Test parsing multiple worktrees."""
        output = """worktree /path/to/main
HEAD abcd1234
branch refs/heads/main

worktree /path/to/.worktrees/feature
HEAD efgh5678
branch refs/heads/feature-branch
locked

worktree /path/to/.worktrees/detached
HEAD ijkl9012
detached
"""
        result = self.git_service._parse_worktree_list(output)

        self.assertEqual(len(result), 3)
        self.assertEqual([wt.is_main for wt in result], [True, False, False])

        feature = result[1]
        self.assertEqual(feature.name, "feature")
        self.assertEqual(feature.branch, "feature-branch")
        self.assertTrue(feature.is_locked)

        detached = result[2]
        self.assertEqual(detached.branch, "")
        self.assertEqual(detached.commit, "ijkl9012")

    def test_parse_worktree_list_bare_repository(self):
        """The bare entry is the main worktree."""
        output = """worktree /path/to/bare
bare

worktree /path/to/wt
HEAD abcd1234
branch refs/heads/topic
"""
        result = self.git_service._parse_worktree_list(output)

        self.assertTrue(result[0].is_main)
        self.assertFalse(result[1].is_main)

    @patch("subprocess.run")
    def test_list_worktrees_failure(self, mock_run):
        mock_run.return_value = completed(128, stderr="fatal: not a git repository")

        with self.assertRaises(GitError) as ctx:
            self.git_service.list_worktrees("/path/to/repo")
        self.assertEqual(ctx.exception.exit_code, 128)

    @patch("subprocess.run")
    def test_is_git_repository_true(self, mock_run):
        """Test checking if path is a Git repository (positive case)."""
        mock_run.return_value = completed(stdout=".git")

        self.assertTrue(self.git_service.is_git_repository("/path/to/repo"))

    @patch("subprocess.run")
    def test_is_git_repository_false(self, mock_run):
        """Test checking if path is a Git repository (negative case)."""
        mock_run.return_value = completed(128, stderr="fatal: not a git repository")

        self.assertFalse(self.git_service.is_git_repository("/path/to/not-repo"))

    def test_create_worktree_validation_error(self):
        """Test worktree creation with invalid inputs."""
        with self.assertRaises(ValidationError):
            self.git_service.create_worktree("", "path", "branch")

        with self.assertRaises(ValidationError):
            self.git_service.create_worktree("repo", "", "branch")

        with self.assertRaises(ValidationError):
            self.git_service.create_worktree("repo", "path", "")

    @patch("subprocess.run")
    def test_create_worktree_new_branch(self, mock_run):
        """A missing branch is created with -b."""
        mock_run.side_effect = [completed(1), completed()]

        self.git_service.create_worktree("/repo", "/repo/.worktrees/feat", "feat")

        args = mock_run.call_args_list[1][0][0]
        self.assertEqual(
            args, ["git", "worktree", "add", "-b", "feat", "/repo/.worktrees/feat"]
        )

    @patch("subprocess.run")
    def test_create_worktree_existing_branch(self, mock_run):
        mock_run.side_effect = [completed(0), completed()]

        self.git_service.create_worktree("/repo", "/repo/.worktrees/feat", "feat")

        args = mock_run.call_args_list[1][0][0]
        self.assertEqual(args, ["git", "worktree", "add", "/repo/.worktrees/feat", "feat"])

    @patch("subprocess.run")
    def test_create_worktree_without_commits(self, mock_run):
        mock_run.side_effect = [
            completed(1),
            completed(128, stderr="fatal: not a valid object name: 'HEAD'"),
        ]

        with self.assertRaises(GitError) as ctx:
            self.git_service.create_worktree("/repo", "/repo/.worktrees/feat", "feat")
        self.assertIn("No commits", ctx.exception.message)
        self.assertIsNotNone(ctx.exception.hint)

    def test_remove_worktree_validation_error(self):
        """Test worktree removal with invalid inputs."""
        with self.assertRaises(ValidationError):
            self.git_service.remove_worktree("")

    @patch("subprocess.run")
    def test_remove_worktree_force(self, mock_run):
        mock_run.return_value = completed()

        self.git_service.remove_worktree("/repo/.worktrees/feat", force=True)

        args = mock_run.call_args[0][0]
        self.assertEqual(
            args, ["git", "worktree", "remove", "--force", "/repo/.worktrees/feat"]
        )

    @patch("subprocess.run")
    def test_remove_worktree_with_changes(self, mock_run):
        mock_run.return_value = completed(
            128, stderr="fatal: '/x' contains modified or untracked files"
        )

        with self.assertRaises(GitError) as ctx:
            self.git_service.remove_worktree("/x")
        self.assertIn("--force", ctx.exception.hint)

    @patch("subprocess.run")
    def test_get_main_branch_prefers_common_names(self, mock_run):
        mock_run.return_value = completed(stdout="feature\nmaster\n")

        self.assertEqual(self.git_service.get_main_branch("/repo"), "master")

    @patch("subprocess.run")
    def test_get_main_branch_without_commits(self, mock_run):
        mock_run.side_effect = [completed(stdout=""), completed(stdout="refs/heads/trunk")]

        self.assertEqual(self.git_service.get_main_branch("/repo"), "trunk")

    @patch("subprocess.run")
    def test_get_repo_root_outside_repository(self, mock_run):
        mock_run.return_value = completed(128, stderr="fatal: not a git repository")

        with self.assertRaises(GitError):
            self.git_service.get_repo_root("/tmp")

    @patch("subprocess.run")
    def test_status_lines_keep_leading_column(self, mock_run):
        mock_run.return_value = completed(
            stdout="## feature-1...origin/feature-1\n M app.py\n?? notes.txt\n"
        )

        lines = self.git_service.get_status_lines("/wt")

        self.assertEqual(lines, [" M app.py", "?? notes.txt"])
        self.assertTrue(self.git_service.has_uncommitted_changes("/wt"))

    @patch("subprocess.run")
    def test_clean_worktree(self, mock_run):
        mock_run.return_value = completed(stdout="## feature-1\n")

        self.assertFalse(self.git_service.has_uncommitted_changes("/wt"))

    @patch("subprocess.run")
    def test_ahead_behind(self, mock_run):
        mock_run.return_value = completed(stdout="3\t1\n")

        self.assertEqual(self.git_service.get_ahead_behind("/wt", "main"), (3, 1))
        self.assertEqual(
            mock_run.call_args[0][0],
            ["git", "rev-list", "--left-right", "--count", "HEAD...main"],
        )

    @patch("subprocess.run")
    def test_ahead_behind_missing_branch(self, mock_run):
        mock_run.return_value = completed(128, stderr="fatal: ambiguous argument")

        self.assertEqual(self.git_service.get_ahead_behind("/wt", "main"), (0, 0))

    @patch("subprocess.run")
    def test_merge_branch(self, mock_run):
        mock_run.return_value = completed(stdout="Fast-forward")

        self.git_service.merge_branch("/repo", "feature-1", "Merge branch 'feature-1'")

        self.assertEqual(
            mock_run.call_args[0][0],
            ["git", "merge", "-m", "Merge branch 'feature-1'", "feature-1"],
        )

    @patch("subprocess.run")
    def test_merge_conflict_lists_files(self, mock_run):
        mock_run.side_effect = [
            completed(1, stdout="CONFLICT (content): Merge conflict in app.py"),
            completed(stdout="app.py\nlib.py\n"),
        ]

        with self.assertRaises(GitError) as ctx:
            self.git_service.merge_branch("/repo", "feature-1", "Merge")

        self.assertEqual(ctx.exception.message, "Merge conflicts in 2 file(s)")
        self.assertIn("app.py, lib.py", ctx.exception.hint)

    @patch("subprocess.run")
    def test_merge_failure_without_conflicts(self, mock_run):
        mock_run.side_effect = [
            completed(1, stderr="merge: feature-9 - not something we can merge"),
            completed(stdout=""),
        ]

        with self.assertRaises(GitError) as ctx:
            self.git_service.merge_branch("/repo", "feature-9", "Merge")

        self.assertIn("not something we can merge", ctx.exception.message)

    @patch("subprocess.run")
    def test_checkout_failure(self, mock_run):
        mock_run.return_value = completed(1, stderr="error: pathspec 'x' did not match")

        with self.assertRaises(GitError):
            self.git_service.checkout("/repo", "x")


if __name__ == "__main__":
    unittest.main()
