"""
Tests for the HEAD integrity check.
"""

import unittest

from gitnorm.core.exceptions import InvariantViolation
from gitnorm.git.repository import open_repository
from gitnorm.normalization.guard import HeadIntegrityGuard

from gitrepo import GitFixture

OVERRIDE = "IGNORE_NORMALIZATION_GIT_HEAD_MOVE"


class TestHeadIntegrityGuard(unittest.TestCase):

    def setUp(self):
        self.git = GitFixture()
        self.path = self.git.init_repo("repo")
        self.base = self.git.commit(self.path)
        self.tip = self.git.commit(self.path)
        self.git.branch(self.path, "other", self.base)

    def tearDown(self):
        self.git.close()

    def _open(self):
        return open_repository(self.path / ".git")

    def _move_master(self, repo):
        # HEAD stays on master but master now points elsewhere
        repo.update_branch("master", self.base)

    def _switch_to_other(self, repo):
        repo.checkout(repo.find_branch("refs/heads/other"))

    def test_unchanged_head(self):
        with self._open() as repo:
            with HeadIntegrityGuard(repo, environ={}) as guard:
                pass

        self.assertEqual(guard.expected_sha, self.tip)
        self.assertEqual(guard.expected_branch_name, "refs/heads/master")

    def test_detached_to_branch_at_same_commit(self):
        self.git.detach(self.path)

        with self._open() as repo:
            with HeadIntegrityGuard(repo, environ={}):
                repo.checkout(repo.find_branch("refs/heads/master"))

    def test_move_without_branch_switch_is_a_bug(self):
        with self._open() as repo:
            with self.assertRaises(InvariantViolation) as ctx:
                with HeadIntegrityGuard(repo, environ={}):
                    self._move_master(repo)

        message = str(ctx.exception)
        self.assertIn(OVERRIDE, message)
        self.assertEqual(ctx.exception.details["expected_sha"], self.tip)
        self.assertEqual(ctx.exception.details["actual_sha"], self.base)

    def test_override_downgrades_to_warning(self):
        with self._open() as repo:
            with self.assertLogs("gitnorm.normalization.guard", level="WARNING") as logs:
                with HeadIntegrityGuard(repo, environ={OVERRIDE: "1"}):
                    self._move_master(repo)

        self.assertTrue(any(OVERRIDE in line for line in logs.output))

    def test_override_requires_literal_one(self):
        with self._open() as repo:
            with self.assertRaises(InvariantViolation):
                with HeadIntegrityGuard(repo, environ={OVERRIDE: "true"}):
                    self._move_master(repo)

    def test_branch_switch_in_dynamic_repository(self):
        with self._open() as repo:
            with HeadIntegrityGuard(repo, dynamic=True, environ={}) as guard:
                self._switch_to_other(repo)

        self.assertEqual(guard.expected_sha, self.base)
        self.assertEqual(guard.expected_branch_name, "refs/heads/other")

    def test_branch_switch_in_static_repository(self):
        with self._open() as repo:
            with self.assertRaises(InvariantViolation):
                with HeadIntegrityGuard(repo, dynamic=False, environ={}):
                    self._switch_to_other(repo)

    def test_dynamic_without_branch_switch(self):
        with self._open() as repo:
            with self.assertRaises(InvariantViolation):
                with HeadIntegrityGuard(repo, dynamic=True, environ={}):
                    self._move_master(repo)

    def test_body_error_propagates(self):
        with self._open() as repo:
            with self.assertRaises(ValueError):
                with HeadIntegrityGuard(repo, environ={}):
                    self._move_master(repo)
                    raise ValueError("normalization failed")

    def test_custom_override_variable(self):
        with self._open() as repo:
            with HeadIntegrityGuard(
                repo, environ={"MY_TOGGLE": "1"}, override_variable="MY_TOGGLE"
            ):
                self._move_master(repo)


if __name__ == "__main__":
    unittest.main()
