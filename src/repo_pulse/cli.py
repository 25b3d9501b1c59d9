"""CLI entrypoint for repo-pulse."""

from __future__ import annotations

import asyncio
import sys

import click
import httpx

from . import __version__
from .cache import DEFAULT_TTL
from .logging_config import setup_logging
from .metrics import DEFAULT_TREND_DAYS
from .validation import ValidationError


def _common_options(func):
    """Options shared by every subcommand."""
    options = [
        click.option(
            "--github-token",
            envvar="GITHUB_TOKEN",
            default=None,
            show_envvar=True,
            help="GitHub personal access token",
        ),
        click.option(
            "--gitlab-token",
            envvar="GITLAB_TOKEN",
            default=None,
            show_envvar=True,
            help="GitLab personal access token",
        ),
        click.option("--output", "output_file", default=None, type=click.Path(),
                     help="Save output to file instead of stdout"),
        click.option("--no-cache", is_flag=True, default=False,
                     help="Disable HTTP response caching"),
        click.option("--cache-ttl", default=DEFAULT_TTL, show_default=True, type=int,
                     help="Cache lifetime in seconds"),
        click.option("--api-url", default=None,
                     help="API base URL (GitHub Enterprise or self-hosted GitLab); "
                          "compare needs both URLs on one platform"),
        click.option("--no-ssl-verify", is_flag=True, default=False,
                     help="Disable SSL verification (self-signed certs)"),
        click.option("-v", "--verbose", is_flag=True, default=False, help="Debug logging"),
        click.option("-q", "--quiet", is_flag=True, default=False, help="Only log errors"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_and_report(target: str, coro) -> None:
    """Run a pipeline coroutine, turning known failures into a one-line error."""
    try:
        asyncio.run(coro)
    except ValidationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    except httpx.HTTPStatusError as exc:
        status = exc.response.status_code
        if status == 404:
            click.echo(f"Error: '{target}' not found. Check the repository URL.", err=True)
        elif status in (401, 403):
            click.echo(
                "Error: Authentication failed or rate limited. "
                "Check $GITHUB_TOKEN / $GITLAB_TOKEN.",
                err=True,
            )
        else:
            click.echo(f"Error: API returned {status}.", err=True)
        sys.exit(1)
    except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
        click.echo(f"Error: Could not connect to the platform API. {exc}", err=True)
        sys.exit(1)
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Score the health of GitHub and GitLab repositories.

    \b
    Examples:
      repo-pulse analyze https://github.com/pallets/click
      repo-pulse analyze https://gitlab.com/gitlab-org/cli --predict 14
      repo-pulse analyze https://github.com/psf/requests --format markdown --output report.md
      repo-pulse compare https://github.com/encode/httpx https://github.com/psf/requests
    """


@main.command()
@click.argument("url")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json", "csv", "markdown"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format (csv exports the daily commit series only)",
)
@click.option("--days", default=DEFAULT_TREND_DAYS, show_default=True,
              type=click.IntRange(min=1), help="Length of the daily commit trend")
@click.option("--predict", "predict_days", default=0, show_default=True,
              type=click.IntRange(min=0), help="Forecast this many days ahead (0 = off)")
@_common_options
def analyze(
    url: str,
    output_format: str,
    days: int,
    predict_days: int,
    github_token: str | None,
    gitlab_token: str | None,
    output_file: str | None,
    no_cache: bool,
    cache_ttl: int,
    api_url: str | None,
    no_ssl_verify: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Analyse the repository at URL."""
    setup_logging(verbose=verbose, quiet=quiet)

    from .orchestrator import run

    _run_and_report(
        url,
        run(
            url,
            tokens={"github": github_token, "gitlab": gitlab_token},
            output_format=output_format.lower(),
            output_file=output_file,
            no_cache=no_cache,
            cache_ttl=cache_ttl,
            api_url=api_url,
            verify_ssl=not no_ssl_verify,
            trend_days=days,
            predict_days=predict_days,
        ),
    )


@main.command()
@click.argument("url_a")
@click.argument("url_b")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    show_default=True,
    help="Output format",
)
@_common_options
def compare(
    url_a: str,
    url_b: str,
    output_format: str,
    github_token: str | None,
    gitlab_token: str | None,
    output_file: str | None,
    no_cache: bool,
    cache_ttl: int,
    api_url: str | None,
    no_ssl_verify: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Compare the health of the repositories at URL_A and URL_B."""
    setup_logging(verbose=verbose, quiet=quiet)

    from .orchestrator import run_compare

    _run_and_report(
        f"{url_a} / {url_b}",
        run_compare(
            url_a,
            url_b,
            tokens={"github": github_token, "gitlab": gitlab_token},
            output_format=output_format.lower(),
            output_file=output_file,
            no_cache=no_cache,
            cache_ttl=cache_ttl,
            api_url=api_url,
            verify_ssl=not no_ssl_verify,
        ),
    )


if __name__ == "__main__":  # pragma: no cover
    main()
