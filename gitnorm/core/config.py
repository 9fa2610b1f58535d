"""
Configuration management for the git normalization engine.

Provides centralized settings for git invocation and normalization
policy with sensible defaults, plus loading from environment
variables, a .env file and JSON configuration files.
"""

import os
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from gitnorm.git.models import AuthenticationInfo


@dataclass
class GitSettings:
    """Settings for invoking the git executable."""

    # Name or path of the git executable
    executable: str = "git"

    # Timeout for git operations (seconds)
    timeout: int = 300


@dataclass
class NormalizationSettings:
    """Policy settings for repository normalization."""

    # Remote kept when duplicate remotes are cleaned up
    default_remote_name: str = "origin"

    # Refspecs added to the remote on top of the all-branches refspec.
    # "{remote}" is replaced with the remote name. Empty by default: every
    # fetched ref becomes a local branch, and pull request builds are named
    # through ls-remote instead. Opt in with
    # "+refs/pull/*/merge:refs/remotes/{remote}/pull/*/merge".
    extra_refspecs: List[str] = field(default_factory=list)

    # Environment toggle that downgrades a HEAD move to a warning
    ignore_head_move_variable: str = "IGNORE_NORMALIZATION_GIT_HEAD_MOVE"

    # Prefix for synthetic branches created at an unnamed detached commit
    detached_branch_prefix: str = "detached/"


@dataclass
class Settings:
    """Master configuration combining all settings groups."""

    git: GitSettings = field(default_factory=GitSettings)
    normalization: NormalizationSettings = field(default_factory=NormalizationSettings)

    # Enable verbose logging
    verbose: bool = False


@dataclass
class PrepareOptions:
    """Options for a single preparation run."""

    # Working directory hint used to locate the repository
    working_directory: str = "."

    # Explicit .git directory, overrides discovery
    dot_git_dir: Optional[str] = None

    # Branch to normalize for when the build agent does not report one
    branch: Optional[str] = None

    # Normalization only happens when requested and on a build agent
    normalize: bool = False

    # Assume the repository was normalized before and skip fetching
    no_fetch: bool = False

    # Repository was cloned by the tool itself and may switch branches
    dynamic: bool = False

    authentication: AuthenticationInfo = field(default_factory=AuthenticationInfo)


class Config:
    """
    Central configuration manager providing access to all settings.

    Supports loading from environment variables and configuration files.
    """

    _instance: Optional["Config"] = None
    _config: Settings = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = Settings()
        return cls._instance

    @classmethod
    def get(cls) -> Settings:
        """Get the current settings."""
        if cls._instance is None:
            cls()
        return cls._instance._config

    @classmethod
    def reset(cls) -> Settings:
        """Restore default settings."""
        instance = cls()
        instance._config = Settings()
        return instance._config

    @classmethod
    def load_from_file(cls, config_path: str) -> Settings:
        """
        Load configuration from a JSON file.

        Args:
            config_path: Path to the configuration file.

        Returns:
            Loaded Settings instance.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, "r") as f:
            data = json.load(f)

        instance = cls()
        instance._config = cls._dict_to_config(data)
        return instance._config

    @classmethod
    def load_from_env(cls, dotenv_path: Optional[str] = None) -> Settings:
        """
        Load configuration from environment variables.

        Variables are prefixed with GITNORM_. A .env file is read first
        without overriding variables that are already set.

        Returns:
            Settings with environment overrides applied.
        """
        load_dotenv(dotenv_path=dotenv_path, override=False)

        instance = cls()
        config = instance._config

        if os.getenv("GITNORM_GIT_EXECUTABLE"):
            config.git.executable = os.getenv("GITNORM_GIT_EXECUTABLE")

        if os.getenv("GITNORM_GIT_TIMEOUT"):
            config.git.timeout = int(os.getenv("GITNORM_GIT_TIMEOUT"))

        if os.getenv("GITNORM_DEFAULT_REMOTE"):
            config.normalization.default_remote_name = os.getenv("GITNORM_DEFAULT_REMOTE")

        if os.getenv("GITNORM_EXTRA_REFSPECS"):
            config.normalization.extra_refspecs = [
                spec.strip()
                for spec in os.getenv("GITNORM_EXTRA_REFSPECS").split(",")
                if spec.strip()
            ]

        if os.getenv("GITNORM_VERBOSE"):
            config.verbose = os.getenv("GITNORM_VERBOSE").lower() in ("true", "1", "yes")

        return config

    @staticmethod
    def _dict_to_config(data: dict) -> Settings:
        """Convert a dictionary to Settings."""
        config = Settings()

        if "git" in data:
            config.git = GitSettings(**data["git"])

        if "normalization" in data:
            config.normalization = NormalizationSettings(**data["normalization"])

        if "verbose" in data:
            config.verbose = data["verbose"]

        return config

    @classmethod
    def save_to_file(cls, config_path: str) -> None:
        """
        Save current configuration to a JSON file.

        Args:
            config_path: Path to save the configuration file.
        """
        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = cls._config_to_dict(cls.get())

        with open(config_path, "w") as f:
            json.dump(data, f, indent=2)

    @staticmethod
    def _config_to_dict(config: Settings) -> dict:
        """Convert Settings to a dictionary."""
        return {
            "git": {
                "executable": config.git.executable,
                "timeout": config.git.timeout,
            },
            "normalization": {
                "default_remote_name": config.normalization.default_remote_name,
                "extra_refspecs": config.normalization.extra_refspecs,
                "ignore_head_move_variable": config.normalization.ignore_head_move_variable,
                "detached_branch_prefix": config.normalization.detached_branch_prefix,
            },
            "verbose": config.verbose,
        }
