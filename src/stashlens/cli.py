from __future__ import annotations

import logging
import sys
from collections.abc import Callable, Sequence
from typing import Any

import click
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler

from .client import StashClient
from .config import ClientSettings
from .errors import ConfigError, StashError
from .formatters import get_formatter
from .models import PullRequestRef

_stderr = Console(stderr=True)


load_dotenv()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_stderr, show_path=False)],
        force=True,
    )


def _parse_ref(repo: str, pull_request_id: int) -> PullRequestRef:
    if "/" not in repo or repo.count("/") != 1:
        raise click.BadParameter(
            f"{repo!r} is not a valid PROJECT/REPO format.",
            param_hint="REPO",
        )
    project, repository = repo.split("/", 1)
    if not project or not repository:
        raise click.BadParameter(
            f"{repo!r} is not a valid PROJECT/REPO format.",
            param_hint="REPO",
        )
    return PullRequestRef(project, repository, pull_request_id)


def _run(ctx: click.Context, action: Callable[[StashClient], Any]) -> Any:
    try:
        settings = ClientSettings.build(**ctx.obj)
        with settings.create_client() as client:
            return action(client)
    except StashError as exc:
        _stderr.print(f"[red]Error:[/red] {exc}")
        sys.exit(1)


def _emit(items: Sequence[Any], output_format: str, title: str) -> None:
    formatter = get_formatter(output_format, title=title)
    click.echo(formatter(items))


_format_option = click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "markdown"]),
    default="json",
    show_default=True,
    help="Output format.",
)
_pr_arguments = [
    click.argument("repo", metavar="PROJECT/REPO"),
    click.argument("pull_request_id", metavar="ID", type=click.IntRange(min=1)),
]


def _pr_command(func: Callable[..., Any]) -> Callable[..., Any]:
    for decorator in reversed(_pr_arguments):
        func = decorator(func)
    return func


@click.group()
@click.option("--url", envvar="STASH_URL", help="Server base URL.  [env: STASH_URL]")
@click.option("--login", envvar="STASH_LOGIN", help="Login for basic auth.  [env: STASH_LOGIN]")
@click.option("--password", envvar="STASH_PASSWORD", help="Password.  [env: STASH_PASSWORD]")
@click.option("--user-slug", envvar="STASH_USER_SLUG", help="Slug of the account used.  [env: STASH_USER_SLUG]")
@click.option(
    "--timeout",
    envvar="STASH_TIMEOUT",
    default=None,
    help="Per-request timeout in seconds.  [env: STASH_TIMEOUT]",
)
@click.option("--verbose", "-v", is_flag=True, help="Log every HTTP exchange.")
@click.pass_context
def cli(
    ctx: click.Context,
    url: str | None,
    login: str | None,
    password: str | None,
    user_slug: str | None,
    timeout: str | None,
    verbose: bool,
) -> None:
    """stashlens — read and manage pull-request reviews on Bitbucket Server."""
    _setup_logging(verbose)
    ctx.obj = {
        "base_url": url,
        "login": login,
        "password": password,
        "user_slug": user_slug,
        "timeout": timeout,
    }


@cli.command()
@_pr_command
@click.option("--path", required=True, help="File path the comments are anchored to.")
@_format_option
@click.pass_context
def comments(ctx: click.Context, repo: str, pull_request_id: int, path: str, output_format: str) -> None:
    """List the comments of a pull request on PATH."""
    ref = _parse_ref(repo, pull_request_id)
    report = _run(ctx, lambda client: client.get_pull_request_comments(ref, path))
    _emit(report.comments, output_format, f"Comments: {repo} #{pull_request_id} {path}")


@cli.command()
@_pr_command
@_format_option
@click.pass_context
def diffs(ctx: click.Context, repo: str, pull_request_id: int, output_format: str) -> None:
    """List the line entries of a pull request diff."""
    ref = _parse_ref(repo, pull_request_id)
    report = _run(ctx, lambda client: client.get_pull_request_diffs(ref))
    _emit(report.diffs, output_format, f"Diff: {repo} #{pull_request_id}")


@cli.command()
@_pr_command
@_format_option
@click.pass_context
def pr(ctx: click.Context, repo: str, pull_request_id: int, output_format: str) -> None:
    """Show a pull request."""
    ref = _parse_ref(repo, pull_request_id)
    pull_request = _run(ctx, lambda client: client.get_pull_request(ref))
    _emit([pull_request], output_format, f"Pull request: {repo} #{pull_request_id}")


@cli.command()
@click.argument("slug", required=False)
@_format_option
@click.pass_context
def user(ctx: click.Context, slug: str | None, output_format: str) -> None:
    """Show the user with SLUG, or the account the client acts as."""

    def fetch(client: StashClient):
        target = slug or client.user_slug
        if not target:
            raise ConfigError("No SLUG given and no login configured.")
        return client.get_user(target)

    found = _run(ctx, fetch)
    _emit([found], output_format, f"User: {found.slug}")


@cli.command()
@_pr_command
@click.pass_context
def approve(ctx: click.Context, repo: str, pull_request_id: int) -> None:
    """Approve a pull request."""
    ref = _parse_ref(repo, pull_request_id)
    _run(ctx, lambda client: client.approve_pull_request(ref))
    _stderr.print(f"[green]Approved {repo} #{pull_request_id}[/green]")


@cli.command()
@_pr_command
@click.pass_context
def unapprove(ctx: click.Context, repo: str, pull_request_id: int) -> None:
    """Withdraw the approval of a pull request."""
    ref = _parse_ref(repo, pull_request_id)
    _run(ctx, lambda client: client.reset_pull_request_approval(ref))
    _stderr.print(f"[green]Approval reset on {repo} #{pull_request_id}[/green]")
