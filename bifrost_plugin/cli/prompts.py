"""Interactive terminal prompts for the installer."""

from rich.console import Console
from rich.prompt import Confirm, Prompt
from rich.rule import Rule
from rich.status import Status
from rich.table import Table

from bifrost_plugin.config.schemas import ConfigEntry, PluginFile, RegistryEntry
from bifrost_plugin.core.installer import InstallState
from bifrost_plugin.core.prompter import ConfigAction, InstallPrompter

CANCEL_CHOICE = "q"

_STEP_MESSAGES = {
    InstallState.FETCHING_MANIFEST: "Fetching plugin configuration...",
    InstallState.INSTALLING_FILES: "Installing plugin files...",
    InstallState.PROCESSING_CONFIGS: "Processing configuration files...",
    InstallState.INSTALLING_DEPENDENCIES: "Installing dependencies...",
    InstallState.INSTALLING_DEV_DEPENDENCIES: "Installing dev dependencies...",
    InstallState.ROLLING_BACK: "Rolling back changes...",
}


def select_plugin(entries: list[RegistryEntry], console: Console) -> RegistryEntry | None:
    """Let the user pick one plugin from ``entries``.

    Returns:
        The chosen entry, or None if the user cancelled
    """
    table = Table(title="Available Plugins")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Plugin", style="cyan")
    table.add_column("Description")

    for index, entry in enumerate(entries, start=1):
        table.add_row(str(index), entry.name, entry.description)

    console.print(table)

    choices = [str(index) for index in range(1, len(entries) + 1)] + [CANCEL_CHOICE]
    try:
        answer = Prompt.ask(
            f"Select a plugin to install ([dim]{CANCEL_CHOICE} to cancel[/dim])",
            choices=choices,
            show_choices=False,
            console=console,
        )
    except (KeyboardInterrupt, EOFError):
        return None

    if answer == CANCEL_CHOICE:
        return None
    return entries[int(answer) - 1]


class RichPrompter(InstallPrompter):
    """Asks the user on the terminal for every decision."""

    def __init__(self, console: Console):
        self.console = console
        self._status: Status | None = None

    def _stop_status(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None

    def state_changed(self, state: InstallState) -> None:
        self._stop_status()

        if state == InstallState.FETCHING_MANIFEST:
            self._status = self.console.status(_STEP_MESSAGES[state])
            self._status.start()
        elif state in _STEP_MESSAGES:
            style = "yellow" if state == InstallState.ROLLING_BACK else "dim"
            self.console.print(f"[{style}]{_STEP_MESSAGES[state]}[/{style}]")

    def choose_location(self, plugin_file: PluginFile) -> str:
        self._stop_status()
        if Confirm.ask(
            f"Install [cyan]{plugin_file.name}[/cyan] to [cyan]{plugin_file.location}[/cyan]?",
            default=True,
            console=self.console,
        ):
            return plugin_file.location

        return Prompt.ask(
            f"Enter custom location for {plugin_file.name}",
            default=plugin_file.location,
            console=self.console,
        )

    def choose_config_action(self, entry: ConfigEntry, fragment: str) -> ConfigAction:
        self._stop_status()
        self.console.print(
            f"\n[cyan]\U0001f4dd Configuration needed for: {entry.target_file}[/cyan]"
        )
        self.console.print(Rule(style="dim"))
        self.console.print(fragment, markup=False, highlight=False)
        self.console.print(Rule(style="dim"))

        answer = Prompt.ask(
            f"How would you like to handle {entry.target_file}? "
            "([bold]auto[/bold]-apply, [bold]manual[/bold] copy, [bold]skip[/bold])",
            choices=["auto", "manual", "skip"],
            default="auto",
            show_choices=False,
            console=self.console,
        )
        if answer == "manual":
            return "manual"
        if answer == "skip":
            return "skip"
        return "auto"

    def show_manual(self, entry: ConfigEntry, fragment: str) -> None:
        self.console.print(
            f"[blue]Please manually add the above configuration to {entry.target_file}[/blue]"
        )
