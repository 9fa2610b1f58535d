"""
Tests for repository path resolution.
"""

import unittest

from gitnorm.core.exceptions import PathResolutionError
from gitnorm.paths import resolve_repository_paths

from gitrepo import GitFixture


class TestResolveRepositoryPaths(unittest.TestCase):

    def setUp(self):
        self.git = GitFixture()
        self.path = self.git.init_repo("repo")
        self.git.commit(self.path)

    def tearDown(self):
        self.git.close()

    def test_from_working_directory(self):
        paths = resolve_repository_paths(None, str(self.path))

        self.assertEqual(paths.dot_git_directory, self.path / ".git")
        self.assertEqual(paths.working_directory, self.path)

    def test_from_subdirectory(self):
        nested = self.path / "src" / "pkg"
        nested.mkdir(parents=True)

        paths = resolve_repository_paths(None, str(nested))

        self.assertEqual(paths.working_directory, self.path)

    def test_explicit_dot_git(self):
        paths = resolve_repository_paths(str(self.path / ".git"))

        self.assertEqual(paths.dot_git_directory, self.path / ".git")
        self.assertEqual(paths.working_directory, self.path)

    def test_gitdir_file(self):
        worktree = self.git.root / "worktree"
        self.git.run(["worktree", "add", "-q", "--detach", str(worktree)], cwd=self.path)

        paths = resolve_repository_paths(None, str(worktree))

        self.assertEqual(paths.working_directory, worktree)
        self.assertTrue(paths.dot_git_directory.is_dir())
        self.assertIn("worktrees", paths.dot_git_directory.parts)

    def test_not_a_repository(self):
        plain = self.git.root / "plain"
        plain.mkdir()

        with self.assertRaises(PathResolutionError):
            resolve_repository_paths(None, str(plain))

    def test_missing_working_directory(self):
        with self.assertRaises(PathResolutionError):
            resolve_repository_paths(None, str(self.git.root / "missing"))

    def test_missing_dot_git(self):
        with self.assertRaises(PathResolutionError):
            resolve_repository_paths(str(self.git.root / "missing" / ".git"))


if __name__ == "__main__":
    unittest.main()
