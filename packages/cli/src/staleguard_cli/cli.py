"""CLI entry point for staleguard.

Commands:
  check    compare this pull request update with the last evaluated one and
             dismiss stale approvals (run from the pull request workflow)
  history  show the revision state recorded by recent workflow runs
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from staleguard_cli.commands.check import check_cmd
from staleguard_cli.commands.history import history_cmd

console = Console()


def _build_store(repo, workflow_name: str, token: str, config, run_id: int | None = None):
    """Instantiate the Actions artifact store for a repository and workflow.

    This factory lives in cli.py so neither staleguard_core nor
    staleguard_store know about the CLI config format.
    """
    from staleguard_store.artifact import ArtifactStore
    from staleguard_store.transport import ActionsArtifactTransport

    return ArtifactStore(
        repo=repo,
        workflow_name=workflow_name,
        transport=ActionsArtifactTransport(token=token),
        current_run_id=run_id,
        artifact_name=config.artifact_name,
        search_depth=config.search_depth,
    )


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )
    # PyGithub and urllib3 are chatty at DEBUG.
    logging.getLogger("github").setLevel(logging.INFO)
    logging.getLogger("urllib3").setLevel(logging.INFO)


@click.group()
@click.version_option(package_name="staleguard", prog_name="staleguard")
@click.option(
    "--config",
    "config_path",
    default=".staleguard.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="STALEGUARD_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Dismiss pull request approvals only when the code really changed."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(check_cmd)
main.add_command(history_cmd)
