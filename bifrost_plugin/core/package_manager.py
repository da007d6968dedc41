"""JavaScript package manager detection and invocation."""

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class PackageManagerError(Exception):
    """Error running a package manager command."""

    def __init__(self, message: str, command: list[str] | None = None):
        self.command = command
        super().__init__(message)


@dataclass(frozen=True)
class PackageManager:
    """Command syntax of one package manager."""

    name: str
    add: tuple[str, ...]
    add_dev: tuple[str, ...]
    remove: tuple[str, ...]
    lockfile: str | None = None

    def add_command(self, packages: list[str], dev: bool = False) -> list[str]:
        return [*(self.add_dev if dev else self.add), *packages]

    def remove_command(self, packages: list[str]) -> list[str]:
        return [*self.remove, *packages]


BUN = PackageManager("bun", ("bun", "add"), ("bun", "add", "-D"), ("bun", "remove"), "bun.lockb")
PNPM = PackageManager(
    "pnpm", ("pnpm", "add"), ("pnpm", "add", "-D"), ("pnpm", "remove"), "pnpm-lock.yaml"
)
YARN = PackageManager(
    "yarn", ("yarn", "add"), ("yarn", "add", "-D"), ("yarn", "remove"), "yarn.lock"
)
NPM = PackageManager("npm", ("npm", "install"), ("npm", "install", "-D"), ("npm", "uninstall"))

# Checked in order; npm is the fallback
_BY_LOCKFILE = [BUN, PNPM, YARN]


def detect_package_manager(project_root: Path) -> PackageManager:
    """Pick the package manager from the lockfile present in ``project_root``."""
    for manager in _BY_LOCKFILE:
        if manager.lockfile and (project_root / manager.lockfile).exists():
            logger.debug("Found %s, using %s", manager.lockfile, manager.name)
            return manager
    logger.debug("No lockfile found, using npm")
    return NPM


def run_package_command(cmd: list[str], cwd: Path) -> None:
    """Run a package manager command with inherited standard streams.

    Raises:
        PackageManagerError: If the command is missing or exits non-zero
    """
    logger.info("Running %s", " ".join(cmd))
    try:
        subprocess.run(cmd, cwd=cwd, check=True)
    except subprocess.CalledProcessError as e:
        logger.error("Command failed with exit code %d: %s", e.returncode, " ".join(cmd))
        raise PackageManagerError(
            f"Command failed with exit code {e.returncode}: {' '.join(cmd)}",
            command=cmd,
        ) from e
    except FileNotFoundError as e:
        logger.error("%s is not installed or not in PATH", cmd[0])
        raise PackageManagerError(
            f"{cmd[0]} is not installed or not in PATH",
            command=cmd,
        ) from e
