"""Main CLI application for Bifrost plugins."""

import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bifrost_plugin import __version__
from bifrost_plugin.cli.prompts import RichPrompter, select_plugin
from bifrost_plugin.config.parser import PROJECT_CONFIG_FILE, ConfigError
from bifrost_plugin.config.schemas import RegistryEntry
from bifrost_plugin.core.installer import (
    InstallResult,
    PluginInstaller,
    PreconditionError,
    resolve_plugin,
)
from bifrost_plugin.core.project import Project
from bifrost_plugin.core.prompter import AutoPrompter, InstallPrompter
from bifrost_plugin.registry.catalog import PluginRegistry
from bifrost_plugin.registry.github import GitHubPluginSource

app = typer.Typer(
    name="bifrost-plugin",
    help="Plugin installer for bifrost projects",
    add_completion=False,
)

console = Console()
error_console = Console(stderr=True)

# Set up logger for the bifrost_plugin package
logger = logging.getLogger("bifrost_plugin")


def setup_logging(verbosity: int) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbosity: 0=WARNING, 1=INFO, 2+=DEBUG
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.DEBUG

    logger.setLevel(level)

    # Only add handler if not already configured
    if not logger.handlers:
        handler = RichHandler(
            console=error_console,
            show_time=verbosity >= 2,
            show_path=verbosity >= 3,
            rich_tracebacks=True,
        )
        handler.setLevel(level)
        logger.addHandler(handler)
    else:
        for h in logger.handlers:
            h.setLevel(level)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]Error:[/red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def get_project(path: Path | None = None) -> Project:
    """Get the current project, exiting if config.bifrost is missing or invalid."""
    try:
        return Project.load(path)
    except FileNotFoundError as e:
        print_error(f"{PROJECT_CONFIG_FILE} not found in current directory")
        console.print("[yellow]Make sure you are in a bifrost project directory[/yellow]")
        raise typer.Exit(1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def get_registry(path: Path | None = None) -> PluginRegistry:
    """Load the plugin registry, exiting if it is unreadable."""
    try:
        return PluginRegistry.load(path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from e


def print_plugin_table(entries: list[RegistryEntry], platform: str) -> None:
    table = Table(title=f"Plugins for {platform}")
    table.add_column("Plugin", style="cyan")
    table.add_column("Description")
    table.add_column("Source", style="dim")

    for entry in entries:
        table.add_row(entry.name, entry.description, entry.github)

    console.print(table)


def print_result(result: InstallResult) -> None:
    """Summarize an install on the console."""
    for path in result.files:
        label = "Updated" if path in result.overwritten else "Created"
        console.print(f"  [dim]{label}:[/dim] {path}")

    for entry in result.configs_with_status("applied"):
        print_success(f"Applied configuration to {entry.target_file}")
    for entry in result.configs_with_status("already_applied"):
        print_success(f"Configuration already exists in {entry.target_file}")
    for entry in result.configs_with_status("missing_target"):
        print_warning(f"Target file {entry.target_file} does not exist, skipped")
    for entry in result.configs_with_status("skipped"):
        print_warning(f"Skipped {entry.target_file}")

    if result.dependencies:
        print_success(f"Dependencies installed: {', '.join(result.dependencies)}")
    if result.dev_dependencies:
        print_success(f"Dev dependencies installed: {', '.join(result.dev_dependencies)}")


def version_callback(value: bool) -> None:
    if value:
        console.print(f"bifrost-plugin {__version__}")
        raise typer.Exit()


@app.command()
def main(
    plugin_name: Annotated[
        str | None,
        typer.Argument(help="Name of the plugin to install"),
    ] = None,
    path: Annotated[
        Path | None,
        typer.Option(
            "--path",
            "-p",
            help="Project directory (defaults to current directory)",
        ),
    ] = None,
    registry: Annotated[
        Path | None,
        typer.Option(
            "--registry",
            "-r",
            envvar="BIFROST_REGISTRY",
            help="Registry file to use instead of the bundled one",
        ),
    ] = None,
    ref: Annotated[
        str,
        typer.Option(
            "--ref",
            envvar="BIFROST_REF",
            help="Branch of the plugin repository to install from",
        ),
    ] = GitHubPluginSource.DEFAULT_REF,
    timeout: Annotated[
        float,
        typer.Option(
            "--timeout",
            envvar="BIFROST_TIMEOUT",
            help="Network timeout per request, in seconds",
        ),
    ] = GitHubPluginSource.DEFAULT_TIMEOUT,
    yes: Annotated[
        bool,
        typer.Option(
            "--yes",
            "-y",
            help="Use default file locations and auto-apply all configuration",
        ),
    ] = False,
    list_only: Annotated[
        bool,
        typer.Option(
            "--list",
            "-l",
            help="List plugins available for this project and exit",
        ),
    ] = False,
    save: Annotated[
        bool,
        typer.Option(
            "--save",
            "-S",
            help=f"Record the installed plugin in {PROJECT_CONFIG_FILE}",
        ),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v info, -vv debug, -vvv trace)",
        ),
    ] = 0,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show the version and exit",
        ),
    ] = False,
) -> None:
    """Install a plugin into the bifrost project.

    Without a plugin name, choose interactively among the plugins that
    match the project's platform.
    """
    setup_logging(verbose)

    project = get_project(path)
    plugin_registry = get_registry(registry)

    if list_only:
        print_plugin_table(plugin_registry.compatible(project.platform), project.platform)
        return

    if plugin_name:
        try:
            entry = resolve_plugin(plugin_registry, plugin_name, project.platform)
        except PreconditionError as e:
            print_error(str(e))
            raise typer.Exit(1) from e
    else:
        compatible = plugin_registry.compatible(project.platform)

        if not compatible:
            console.print(f"[yellow]No plugins available for platform: {project.platform}[/yellow]")
            return

        selected = select_plugin(compatible, console)
        if selected is None:
            console.print("[yellow]Installation cancelled[/yellow]")
            return
        entry = selected

    console.print(f"[blue]Installing {entry.name}...[/blue]")

    prompter: InstallPrompter = AutoPrompter() if yes else RichPrompter(console)
    installer = PluginInstaller(
        project,
        prompter=prompter,
        source_factory=lambda repository: GitHubPluginSource(
            repository, ref=ref, timeout=timeout
        ),
    )

    try:
        result = installer.install(entry.github)
    except Exception as e:
        print_error(str(e))
        for note in getattr(e, "__notes__", []):
            error_console.print(f"  [red]{note}[/red]")
        raise typer.Exit(1) from e

    print_result(result)
    console.print()
    print_success("Plugin installed successfully!")

    if save and project.add_plugin(entry.name):
        project.save()
        print_success(f"Saved {entry.name} to {PROJECT_CONFIG_FILE}")


if __name__ == "__main__":
    app()
