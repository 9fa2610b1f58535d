"""
Command-line interface for the git normalization engine.

Provides commands for preparing a CI checkout, cloning a dynamic
repository and writing a default configuration file.
"""

import sys
from pathlib import Path

import click

from gitnorm import __version__
from gitnorm.utils.logging_config import setup_logging
from gitnorm.utils.validation import validate_clone_target, validate_url


def _fail(ctx, error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get("verbose"):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file"
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file"
)
@click.pass_context
def cli(ctx, verbose, log_file, config_path):
    """
    gitnorm

    Normalize CI checkouts of git repositories so a version can be
    calculated from them.
    """
    from gitnorm.core.config import Config

    ctx.ensure_object(dict)

    if config_path:
        Config.load_from_file(config_path)
    settings = Config.load_from_env()

    verbose = verbose or settings.verbose
    ctx.obj["verbose"] = verbose

    setup_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)


def _authentication(username, password):
    from gitnorm.git.models import AuthenticationInfo

    return AuthenticationInfo(username=username, password=password)


@cli.command()
@click.argument("working_directory", default=".", type=click.Path(file_okay=False))
@click.option("--dot-git-dir", type=click.Path(), help="Explicit .git directory")
@click.option("--branch", "-b", help="Branch to use when the build agent reports none")
@click.option("--normalize/--no-normalize", default=False, help="Normalize the repository")
@click.option("--no-fetch", is_flag=True, help="Do not fetch from the remote")
@click.option("--dynamic", is_flag=True, help="Repository is an agent-managed clone")
@click.option("--username", "-u", envvar="GITNORM_USERNAME", help="Remote username")
@click.option("--password", "-p", envvar="GITNORM_PASSWORD", help="Remote password")
@click.pass_context
def prepare(ctx, working_directory, dot_git_dir, branch, normalize, no_fetch,
            dynamic, username, password):
    """
    Prepare a build agent checkout.

    Examples:

        gitnorm prepare --normalize

        gitnorm prepare ./checkout --normalize --branch main --no-fetch
    """
    from gitnorm.agents import detect_build_agent
    from gitnorm.core.config import Config, PrepareOptions
    from gitnorm.core.exceptions import NormalizationError
    from gitnorm.preparer import Preparer

    options = PrepareOptions(
        working_directory=working_directory,
        dot_git_dir=dot_git_dir,
        branch=branch,
        normalize=normalize,
        no_fetch=no_fetch,
        dynamic=dynamic,
        authentication=_authentication(username, password),
    )

    try:
        preparer = Preparer(options, detect_build_agent(), Config.get())
        outcome = preparer.prepare()
    except NormalizationError as e:
        _fail(ctx, e)

    if outcome is None:
        click.echo("Normalization skipped")
    else:
        click.echo(f"Branch: {outcome.branch}")
        click.echo(f"HEAD:   {outcome.head_sha}")


@cli.command()
@click.argument("url")
@click.argument("target", type=click.Path(file_okay=False))
@click.option("--branch", "-b", help="Branch to normalize for")
@click.option("--normalize/--no-normalize", default=True, help="Normalize after cloning")
@click.option("--username", "-u", envvar="GITNORM_USERNAME", help="Remote username")
@click.option("--password", "-p", envvar="GITNORM_PASSWORD", help="Remote password")
@click.pass_context
def clone(ctx, url, target, branch, normalize, username, password):
    """
    Clone a repository without checkout and normalize it.

    Examples:

        gitnorm clone https://github.com/user/repo ./repo --branch main
    """
    from gitnorm.agents import detect_build_agent
    from gitnorm.core.config import Config, PrepareOptions
    from gitnorm.core.exceptions import NormalizationError
    from gitnorm.git.cloner import Cloner
    from gitnorm.preparer import Preparer

    is_valid, error = validate_url(url)
    if not is_valid:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    is_valid, error = validate_clone_target(target)
    if not is_valid:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    auth = _authentication(username, password)

    try:
        if normalize:
            options = PrepareOptions(branch=branch, dynamic=True, authentication=auth)
            preparer = Preparer(options, detect_build_agent(), Config.get())
            outcome = preparer.clone_and_prepare(url, target)
            click.echo(f"Branch: {outcome.branch}")
        else:
            Cloner(Config.get().git).clone(url, target, auth)
    except NormalizationError as e:
        _fail(ctx, e)

    click.echo(f"Cloned to: {target}")


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="gitnorm.json",
    help="Output path for configuration file"
)
def init(output):
    """
    Initialize configuration file.

    Creates a default configuration file that can be customized.
    """
    from gitnorm.core.config import Config

    Config.save_to_file(output)
    click.echo(f"Configuration saved to: {output}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
