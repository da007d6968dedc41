"""Shared fixtures for Bifrost tests."""

import json
import shutil
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path
from typing import Any

import pytest

from bifrost_plugin.config.schemas import ConfigEntry, PluginFile, PluginManifest
from bifrost_plugin.core.installer import InstallState
from bifrost_plugin.core.project import Project
from bifrost_plugin.core.prompter import ConfigAction, InstallPrompter
from bifrost_plugin.registry.github import FetchError


class FakePluginSource:
    """In-memory stand-in for GitHubPluginSource."""

    def __init__(self, manifest: PluginManifest, files: dict[str, str]):
        self.manifest = manifest
        self.files = files
        self.fetched: list[str] = []

    def fetch_manifest(self) -> PluginManifest:
        self.fetched.append("plugin.bifrost")
        return self.manifest

    def fetch_file(self, name: str) -> str:
        self.fetched.append(name)
        if name not in self.files:
            raise FetchError(f"Failed to fetch file {name}: HTTP 404: Not Found", status_code=404)
        return self.files[name]


class ScriptedPrompter(InstallPrompter):
    """Prompter that answers from preset values and records what it saw."""

    def __init__(
        self,
        actions: dict[str, ConfigAction] | None = None,
        locations: dict[str, str] | None = None,
        default_action: ConfigAction = "auto",
    ):
        self.actions = actions or {}
        self.locations = locations or {}
        self.default_action = default_action
        self.states: list[InstallState] = []
        self.asked: list[str] = []
        self.manual: list[str] = []

    def choose_location(self, plugin_file: PluginFile) -> str:
        return self.locations.get(plugin_file.name, plugin_file.location)

    def choose_config_action(self, entry: ConfigEntry, fragment: str) -> ConfigAction:
        self.asked.append(entry.target_file)
        return self.actions.get(entry.target_file, self.default_action)

    def show_manual(self, entry: ConfigEntry, fragment: str) -> None:
        self.manual.append(entry.target_file)

    def state_changed(self, state: InstallState) -> None:
        self.states.append(state)


class RecordingRunner:
    """Records package manager commands instead of running them."""

    def __init__(self, fail_on: str | None = None):
        self.commands: list[list[str]] = []
        self.fail_on = fail_on

    def __call__(self, cmd: list[str], cwd: Path) -> None:
        self.commands.append(cmd)
        if self.fail_on is not None and self.fail_on in cmd:
            from bifrost_plugin.core.package_manager import PackageManagerError

            raise PackageManagerError(f"Command failed: {' '.join(cmd)}", command=cmd)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory."""
    path = Path(tempfile.mkdtemp(prefix="bifrost_test_"))
    yield path
    if path.exists():
        shutil.rmtree(path)


@pytest.fixture
def temp_project(temp_dir: Path) -> Path:
    """Create a project directory with config.bifrost for the react platform."""
    project_dir = temp_dir / "test-project"
    project_dir.mkdir()
    config = {
        "name": "test-project",
        "description": "A test project",
        "platform": "react",
        "github": "example/test-project",
        "tags": ["web"],
    }
    (project_dir / "config.bifrost").write_text(json.dumps(config, indent=2))
    return project_dir


@pytest.fixture
def project(temp_project: Path) -> Project:
    """Loaded project."""
    return Project.load(temp_project)


@pytest.fixture
def sample_manifest_data() -> dict[str, Any]:
    """Raw plugin.bifrost content with files, configs and dependencies."""
    return {
        "name": "tailwind",
        "description": "Tailwind CSS",
        "platform": "react",
        "github": "example/tailwind",
        "tags": ["css"],
        "files": [
            {"name": "tailwind.config.js", "location": "tailwind.config.js"},
            {"name": "styles/tailwind.css", "location": "src/styles/tailwind.css"},
        ],
        "configs": [
            {
                "targetFile": "package.json",
                "configSource": "package.fragment.json",
                "insertType": "merge",
            },
            {"targetFile": ".env", "configSource": "env.fragment", "insertType": "append"},
        ],
        "dependencies": ["tailwindcss"],
        "devDependencies": ["postcss", "autoprefixer"],
    }


@pytest.fixture
def sample_manifest(sample_manifest_data: dict[str, Any]) -> PluginManifest:
    return PluginManifest.model_validate(sample_manifest_data)


@pytest.fixture
def sample_files() -> dict[str, str]:
    """Remote files matching sample_manifest."""
    return {
        "tailwind.config.js": "module.exports = { content: ['./src/**/*.tsx'] };\n",
        "styles/tailwind.css": "@tailwind base;\n@tailwind components;\n@tailwind utilities;\n",
        "package.fragment.json": json.dumps({"scripts": {"css": "tailwindcss -o out.css"}}),
        "env.fragment": "# Tailwind\nTAILWIND_MODE=watch\n",
    }


@pytest.fixture
def make_source() -> Callable[[PluginManifest, dict[str, str]], FakePluginSource]:
    def factory(manifest: PluginManifest, files: dict[str, str]) -> FakePluginSource:
        return FakePluginSource(manifest, files)

    return factory


@pytest.fixture
def make_prompter() -> Callable[..., ScriptedPrompter]:
    return ScriptedPrompter


@pytest.fixture
def make_runner() -> Callable[..., RecordingRunner]:
    return RecordingRunner
