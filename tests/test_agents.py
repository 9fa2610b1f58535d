"""
Tests for build agent detection.
"""

import pytest

from gitnorm.agents import (
    AzurePipelines,
    GenericAgent,
    GitHubActions,
    GitLabCi,
    Jenkins,
    detect_build_agent,
)


def test_no_agent():
    assert detect_build_agent({}) is None


@pytest.mark.parametrize("environ,agent_type,branch", [
    ({"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/pull/3/merge"}, GitHubActions, "refs/pull/3/merge"),
    ({"GITHUB_ACTIONS": "true", "GITHUB_REF": "refs/tags/v1.0"}, GitHubActions, None),
    ({"GITLAB_CI": "true", "CI_COMMIT_REF_NAME": "develop"}, GitLabCi, "develop"),
    ({"GITLAB_CI": "true", "CI_COMMIT_REF_NAME": "v1", "CI_COMMIT_TAG": "v1"}, GitLabCi, None),
    ({"TF_BUILD": "True", "BUILD_SOURCEBRANCH": "refs/heads/main"}, AzurePipelines, "refs/heads/main"),
    ({"JENKINS_URL": "http://ci", "GIT_BRANCH": "origin/main"}, Jenkins, "origin/main"),
    ({"JENKINS_URL": "http://ci", "BRANCH_NAME": "main", "GIT_BRANCH": "x"}, Jenkins, "main"),
    ({"GITNORM_BUILD_AGENT": "generic", "GITNORM_BRANCH": "main"}, GenericAgent, "main"),
])
def test_detection(environ, agent_type, branch):
    agent = detect_build_agent(environ)

    assert isinstance(agent, agent_type)
    assert agent.get_current_branch(False) == branch


def test_blank_values_are_ignored():
    agent = detect_build_agent({"GITLAB_CI": "true", "CI_COMMIT_REF_NAME": "  "})

    assert agent.get_current_branch(False) is None


def test_jenkins_pipeline_cleans_up_remotes():
    assert detect_build_agent({"JENKINS_URL": "x", "BRANCH_NAME": "main"}).should_clean_up_remotes()
    assert not detect_build_agent({"JENKINS_URL": "x"}).should_clean_up_remotes()


def test_other_agents_keep_remotes():
    agent = detect_build_agent({"GITHUB_ACTIONS": "true"})

    assert not agent.should_clean_up_remotes()


def test_generic_agent_cleanup_toggle():
    agent = detect_build_agent({
        "GITNORM_BUILD_AGENT": "generic",
        "GITNORM_CLEAN_UP_REMOTES": "true",
    })

    assert agent.should_clean_up_remotes()


def test_generic_agent_takes_precedence():
    agent = detect_build_agent({"GITNORM_BUILD_AGENT": "generic", "GITHUB_ACTIONS": "true"})

    assert isinstance(agent, GenericAgent)
