"""
Tests for detached HEAD branch resolution.
"""

import unittest

import pytest

from gitnorm.core.exceptions import ConfigurationError
from gitnorm.git.models import BranchRef
from gitnorm.git.repository import open_repository
from gitnorm.normalization.resolver import (
    DISAMBIGUATION_RULES,
    BranchResolver,
    ResolutionState,
    disambiguate,
    normalize_branch_name,
    prefer_master,
    prefer_single_unseparated,
)

from gitrepo import GitFixture


def _branches(*names):
    return [BranchRef.from_canonical(f"refs/heads/{name}", "a" * 40) for name in names]


class TestDisambiguationRules:
    """Rules are pure functions over the candidate set."""

    def test_rule_order(self):
        assert [rule for _, rule in DISAMBIGUATION_RULES] == [
            prefer_master,
            prefer_single_unseparated,
        ]

    @pytest.mark.parametrize("names", [
        ("master", "release/1.0"),
        ("release/1.0", "master"),
        ("hotfix", "master", "develop"),
    ])
    def test_master_wins_regardless_of_order(self, names):
        chosen, explanation = disambiguate(_branches(*names))

        assert chosen.friendly_name == "master"
        assert "master" in explanation

    def test_single_branch_without_separators(self):
        chosen, explanation = disambiguate(_branches("feature/x", "hotfix"))

        assert chosen.friendly_name == "hotfix"
        assert "refs/heads/hotfix" in explanation

    def test_dash_counts_as_separator(self):
        assert prefer_single_unseparated(_branches("feature-x", "develop")).friendly_name == "develop"

    def test_two_plain_branches_are_ambiguous(self):
        with pytest.raises(ConfigurationError) as excinfo:
            disambiguate(_branches("develop", "hotfix"))

        message = str(excinfo.value)
        assert "refs/heads/develop" in message
        assert "refs/heads/hotfix" in message
        assert "disambiguate" in message

    def test_only_separated_branches_are_ambiguous(self):
        with pytest.raises(ConfigurationError):
            disambiguate(_branches("feature/a", "feature-b"))

    def test_prefer_master_none(self):
        assert prefer_master(_branches("main", "develop")) is None


class TestNormalizeBranchName:

    @pytest.mark.parametrize("name,expected", [
        ("refs/heads/feature", "refs/feature"),
        ("feature", "refs/feature"),
        ("refs/pull/5/merge", "refs/pull/5/merge"),
        ("pull/5/merge", "refs/pull/5/merge"),
        ("heads/feature", "refs/feature"),
        ("feature/heads/x", "refs/feature/heads/x"),
        ("refs/heads/feature/heads/x", "refs/feature/heads/x"),
    ])
    def test_normalize(self, name, expected):
        assert normalize_branch_name(name) == expected


class TestBranchResolver(unittest.TestCase):

    def setUp(self):
        self.git = GitFixture()
        self.path = self.git.init_repo("repo")
        self.base = self.git.commit(self.path)
        self.tip = self.git.commit(self.path)
        self.resolver = BranchResolver()

    def tearDown(self):
        self.git.close()

    def _resolve(self, current_branch=None, path=None):
        path = path or self.path
        with open_repository(path / ".git", path) as repo:
            outcome = self.resolver.resolve(repo, current_branch)
            head = repo.head()
        return outcome, head

    def _only_on(self, *names):
        """Detach at tip with exactly the given local branches pointing at it."""
        self.git.detach(self.path, self.tip)
        self.git.branch(self.path, "master", self.base)
        for name in names:
            self.git.branch(self.path, name, self.tip)

    def test_attached_is_noop(self):
        outcome, head = self._resolve("develop")

        self.assertEqual(outcome.state, ResolutionState.ATTACHED.value)
        self.assertEqual(outcome.branch, "refs/heads/master")
        self.assertEqual(head.tip_sha, self.tip)

    def test_matching_current_branch(self):
        self._only_on("feature-a", "feature-b")

        outcome, head = self._resolve("refs/heads/feature-b")

        self.assertEqual(outcome.branch, "refs/heads/feature-b")
        self.assertEqual(outcome.state, ResolutionState.DETACHED_RESOLVED.value)
        self.assertEqual(head.canonical_name, "refs/heads/feature-b")
        self.assertEqual(head.tip_sha, self.tip)

    def test_friendly_current_branch(self):
        self._only_on("feature-a", "feature-b")

        outcome, _ = self._resolve("feature-a")

        self.assertEqual(outcome.branch, "refs/heads/feature-a")

    def test_inner_heads_segment_is_kept(self):
        self._only_on("feature/x", "feature/heads/x")

        outcome, _ = self._resolve("feature/heads/x")

        self.assertEqual(outcome.branch, "refs/heads/feature/heads/x")

    def test_prefers_unseparated_branch(self):
        self._only_on("feature/x", "hotfix")

        with self.assertLogs("gitnorm.normalization.resolver", level="WARNING") as logs:
            outcome, head = self._resolve()

        self.assertEqual(head.canonical_name, "refs/heads/hotfix")
        self.assertEqual(outcome.branch, "refs/heads/hotfix")
        self.assertTrue(any("hotfix" in line for line in logs.output))

    def test_prefers_master(self):
        self.git.detach(self.path, self.tip)
        self.git.branch(self.path, "release/1.0", self.tip)

        outcome, head = self._resolve()

        self.assertEqual(head.canonical_name, "refs/heads/master")
        self.assertEqual(head.tip_sha, self.tip)

    def test_ambiguous_candidates(self):
        self._only_on("develop", "hotfix")

        with self.assertRaises(ConfigurationError):
            self._resolve()

        self.assertIsNone(self.git.head_ref(self.path))

    def test_single_candidate_beats_stale_hint(self):
        self._only_on("develop")

        outcome, head = self._resolve("refs/heads/some-other-branch")

        self.assertEqual(head.canonical_name, "refs/heads/develop")

    def test_fake_branch_from_hint(self):
        self.git.detach(self.path, self.tip)
        self.git.branch(self.path, "master", self.base)
        before = self.git.local_branches(self.path)

        outcome, head = self._resolve("refs/pull/9/merge")

        after = self.git.local_branches(self.path)
        self.assertEqual(set(after) - set(before), {"refs/heads/pull/9/merge"})
        self.assertFalse(head.is_detached)
        self.assertEqual(head.canonical_name, "refs/heads/pull/9/merge")
        self.assertEqual(head.tip_sha, self.tip)

    def test_fake_branch_without_hint(self):
        self.git.detach(self.path, self.tip)
        self.git.branch(self.path, "master", self.base)

        outcome, head = self._resolve()

        self.assertEqual(outcome.branch, f"refs/heads/detached/{self.tip[:7]}")
        self.assertFalse(head.is_detached)
        self.assertEqual(head.tip_sha, self.tip)

    def test_fake_branch_hint_already_taken(self):
        self.git.detach(self.path, self.tip)
        self.git.branch(self.path, "master", self.base)

        outcome, _ = self._resolve("master")

        self.assertEqual(outcome.branch, f"refs/heads/detached/{self.tip[:7]}")

    def test_fake_branch_named_after_pull_request(self):
        upstream = self.git.init_repo("upstream")
        self.git.commit(upstream)
        pr_sha = self.git.pull_request_ref(upstream, 42)
        clone = self.git.clone(upstream, "clone")
        self.git.run(["fetch", "-q", "origin", "refs/pull/42/merge"], cwd=clone)
        self.git.detach(clone, "FETCH_HEAD")

        outcome, head = self._resolve("refs/heads/unrelated", path=clone)

        self.assertEqual(outcome.branch, "refs/heads/pull/42/merge")
        self.assertEqual(head.tip_sha, pr_sha)

    def test_several_pull_requests_are_ambiguous(self):
        upstream = self.git.init_repo("upstream")
        self.git.commit(upstream)
        pr_sha = self.git.pull_request_ref(upstream, 1)
        self.git.run(["update-ref", "refs/pull/2/merge", pr_sha], cwd=upstream)
        clone = self.git.clone(upstream, "clone")
        self.git.run(["fetch", "-q", "origin", "refs/pull/1/merge"], cwd=clone)
        self.git.detach(clone, "FETCH_HEAD")

        with self.assertRaises(ConfigurationError) as ctx:
            self._resolve(path=clone)

        self.assertIn("refs/pull/1/merge", str(ctx.exception))
        self.assertIn("refs/pull/2/merge", str(ctx.exception))

    def test_resolution_is_idempotent(self):
        self._only_on("feature/x", "hotfix")

        first, first_head = self._resolve()
        second, second_head = self._resolve()

        self.assertEqual(first.branch, second.branch)
        self.assertEqual(first_head.tip_sha, second_head.tip_sha)
        self.assertEqual(second.state, ResolutionState.ATTACHED.value)


if __name__ == "__main__":
    unittest.main()
