"""Tests for bifrost_plugin.core.installer module."""

import json
from pathlib import Path

import pytest

from bifrost_plugin.config.schemas import PluginManifest, RegistryEntry
from bifrost_plugin.core.installer import (
    InstallError,
    InstallResult,
    InstallState,
    PlatformMismatchError,
    PluginInstaller,
    PreconditionError,
    resolve_plugin,
)
from bifrost_plugin.core.package_manager import NPM, YARN, PackageManagerError
from bifrost_plugin.core.project import Project
from bifrost_plugin.core.prompter import AutoPrompter
from bifrost_plugin.reconcile.base import ReconcileError
from bifrost_plugin.registry.catalog import PluginRegistry
from bifrost_plugin.registry.github import FetchError, GitHubPluginSource


@pytest.fixture
def package_json(project: Project) -> Path:
    """An existing package.json in the project."""
    path = project.root / "package.json"
    path.write_text(json.dumps({"name": "app", "scripts": {"dev": "vite"}}, indent=2))
    return path


def make_installer(project, source, prompter=None, runner=None) -> PluginInstaller:
    return PluginInstaller(
        project,
        prompter=prompter,
        source_factory=lambda repository: source,
        package_manager=NPM,
        run_command=runner or (lambda cmd, cwd: None),
    )


class TestPluginInstallerInit:
    """Tests for PluginInstaller initialization."""

    def test_defaults(self, project: Project):
        """Defaults to auto prompter and GitHub source."""
        installer = PluginInstaller(project)

        assert installer.project is project
        assert isinstance(installer.prompter, AutoPrompter)
        assert installer._source_factory is GitHubPluginSource

    def test_detects_package_manager_lazily(self, project: Project):
        """Package manager comes from the project's lockfile."""
        (project.root / "yarn.lock").write_text("")

        assert PluginInstaller(project).package_manager is YARN


class TestInstallResult:
    """Tests for InstallResult dataclass."""

    def test_success_only_when_succeeded(self):
        result = InstallResult(repository="o/r")
        assert result.success is False

        result.state = InstallState.SUCCEEDED
        assert result.success is True


class TestInstallSuccess:
    """Tests for a full successful install."""

    def test_installs_everything(
        self,
        project: Project,
        package_json: Path,
        sample_manifest: PluginManifest,
        sample_files: dict[str, str],
        make_source,
        make_prompter,
        make_runner,
    ):
        """Writes files, reconciles configs and adds dependencies."""
        (project.root / ".env").write_text("NODE_ENV=development\n")
        source = make_source(sample_manifest, sample_files)
        prompter = make_prompter()
        runner = make_runner()

        result = make_installer(project, source, prompter, runner).install("example/tailwind")

        assert result.success is True
        assert result.files == [
            project.root / "tailwind.config.js",
            project.root / "src" / "styles" / "tailwind.css",
        ]
        assert (project.root / "src" / "styles" / "tailwind.css").read_text().startswith(
            "@tailwind base;"
        )

        package = json.loads(package_json.read_text())
        assert package["scripts"] == {"dev": "vite", "css": "tailwindcss -o out.css"}
        assert (project.root / ".env").read_text() == (
            "NODE_ENV=development\n\n\nTAILWIND_MODE=watch"
        )
        assert [o.status for o in result.configs] == ["applied", "applied"]

        assert runner.commands == [
            ["npm", "install", "tailwindcss"],
            ["npm", "install", "-D", "postcss", "autoprefixer"],
        ]
        assert result.dependencies == ["tailwindcss"]
        assert result.dev_dependencies == ["postcss", "autoprefixer"]

    def test_state_sequence(
        self,
        project: Project,
        sample_manifest: PluginManifest,
        sample_files: dict[str, str],
        make_source,
        make_prompter,
    ):
        """Walks through every state in order."""
        prompter = make_prompter()
        make_installer(project, make_source(sample_manifest, sample_files), prompter).install(
            "example/tailwind"
        )

        assert prompter.states == [
            InstallState.FETCHING_MANIFEST,
            InstallState.VALIDATING_PLATFORM,
            InstallState.INSTALLING_FILES,
            InstallState.PROCESSING_CONFIGS,
            InstallState.INSTALLING_DEPENDENCIES,
            InstallState.INSTALLING_DEV_DEPENDENCIES,
            InstallState.SUCCEEDED,
        ]

    def test_skips_dependency_steps_when_none(
        self, project: Project, make_source, make_prompter, make_runner
    ):
        """No package manager call without dependencies."""
        manifest = PluginManifest(platform="react")
        prompter = make_prompter()
        runner = make_runner()

        result = make_installer(project, make_source(manifest, {}), prompter, runner).install(
            "o/r"
        )

        assert result.success is True
        assert runner.commands == []
        assert InstallState.INSTALLING_DEPENDENCIES not in prompter.states

    def test_custom_location(self, project: Project, make_source, make_prompter):
        """The prompter can redirect a file."""
        manifest = PluginManifest.model_validate(
            {"platform": "react", "files": [{"name": "a.ts", "location": "src/a.ts"}]}
        )
        prompter = make_prompter(locations={"a.ts": "lib/custom/a.ts"})

        result = make_installer(project, make_source(manifest, {"a.ts": "x"}), prompter).install(
            "o/r"
        )

        assert result.files == [project.root / "lib" / "custom" / "a.ts"]
        assert not (project.root / "src").exists()

    def test_reports_overwritten_files(self, project: Project, make_source):
        """Files that replaced existing ones are listed separately."""
        (project.root / "a.ts").write_text("user content")
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "files": [
                    {"name": "a.ts", "location": "a.ts"},
                    {"name": "b.ts", "location": "b.ts"},
                ],
            }
        )
        source = make_source(manifest, {"a.ts": "x", "b.ts": "y"})

        result = make_installer(project, source).install("o/r")

        assert result.files == [project.root / "a.ts", project.root / "b.ts"]
        assert result.overwritten == [project.root / "a.ts"]


class TestConfigProcessing:
    """Tests for config entry handling."""

    def _manifest(self, target: str, insert_type: str = "append") -> PluginManifest:
        return PluginManifest.model_validate(
            {
                "platform": "react",
                "configs": [
                    {"targetFile": target, "configSource": "frag", "insertType": insert_type}
                ],
            }
        )

    def test_missing_target_skipped(self, project: Project, make_source, make_prompter):
        """A missing target file is skipped, never created."""
        prompter = make_prompter()
        result = make_installer(
            project, make_source(self._manifest("vite.config.ts"), {"frag": "x"}), prompter
        ).install("o/r")

        assert result.success is True
        assert result.configs[0].status == "missing_target"
        assert not (project.root / "vite.config.ts").exists()
        assert prompter.asked == []

    def test_already_applied_not_prompted(self, project: Project, make_source, make_prompter):
        """Existing content is left alone without asking."""
        target = project.root / "index.css"
        target.write_text("@tailwind   base;\n")
        prompter = make_prompter()

        result = make_installer(
            project, make_source(self._manifest("index.css"), {"frag": "@tailwind base;"}), prompter
        ).install("o/r")

        assert result.configs[0].status == "already_applied"
        assert prompter.asked == []
        assert target.read_text() == "@tailwind   base;\n"

    def test_crlf_target_keeps_line_endings(self, project: Project, make_source):
        """Auto-apply leaves the existing CRLF lines byte for byte."""
        target = project.root / ".gitignore"
        target.write_bytes(b"node_modules\r\ndist\r\n")

        make_installer(
            project, make_source(self._manifest(".gitignore"), {"frag": "coverage\n"})
        ).install("o/r")

        assert target.read_bytes() == b"node_modules\r\ndist\r\n\r\n\r\ncoverage\r\n"

    def test_skip_action(self, project: Project, make_source, make_prompter):
        """Skip leaves the file untouched."""
        target = project.root / "index.css"
        target.write_text("body {}")
        prompter = make_prompter(default_action="skip")

        result = make_installer(
            project, make_source(self._manifest("index.css"), {"frag": "@tailwind base;"}), prompter
        ).install("o/r")

        assert result.configs_with_status("skipped")[0].target_file == "index.css"
        assert target.read_text() == "body {}"

    def test_manual_action(self, project: Project, make_source, make_prompter):
        """Manual hands the fragment to the prompter."""
        target = project.root / "index.css"
        target.write_text("body {}")
        prompter = make_prompter(default_action="manual")

        result = make_installer(
            project, make_source(self._manifest("index.css"), {"frag": "@tailwind base;"}), prompter
        ).install("o/r")

        assert result.configs[0].status == "manual"
        assert prompter.manual == ["index.css"]
        assert target.read_text() == "body {}"

    def test_replace_text(self, project: Project, make_source, make_prompter):
        """Replace overwrites a text target."""
        target = project.root / "index.css"
        target.write_text("body {}")

        make_installer(
            project,
            make_source(self._manifest("index.css", "replace"), {"frag": "@tailwind base;"}),
            make_prompter(),
        ).install("o/r")

        assert target.read_text() == "@tailwind base;"

    def test_configs_see_files_written_earlier(self, project: Project, make_source):
        """Fragments can target a file installed by the same plugin."""
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "files": [{"name": "settings.json", "location": ".vscode/settings.json"}],
                "configs": [
                    {"targetFile": ".vscode/settings.json", "configSource": "extra.json"}
                ],
            }
        )
        files = {"settings.json": '{"a": 1}', "extra.json": '{"b": 2}'}

        result = make_installer(project, make_source(manifest, files)).install("o/r")

        assert result.configs[0].status == "applied"
        assert json.loads((project.root / ".vscode" / "settings.json").read_text()) == {
            "a": 1,
            "b": 2,
        }


class TestInstallFailure:
    """Tests for failures and rollback."""

    def test_platform_mismatch_before_writing(self, project: Project, make_source, make_runner):
        """Fails fast on platform mismatch, nothing written."""
        manifest = PluginManifest.model_validate(
            {"platform": "vue", "files": [{"name": "a.ts", "location": "a.ts"}]}
        )
        source = make_source(manifest, {"a.ts": "x"})
        runner = make_runner()

        with pytest.raises(PlatformMismatchError, match="Plugin is for vue, but project is react"):
            make_installer(project, source, runner=runner).install("o/r")

        assert source.fetched == ["plugin.bifrost"]
        assert not (project.root / "a.ts").exists()
        assert runner.commands == []

    def test_second_file_fetch_fails(self, project: Project, make_source, make_runner):
        """A failed fetch removes earlier files and installs no dependencies."""
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "files": [
                    {"name": "one.ts", "location": "src/lib/one.ts"},
                    {"name": "two.ts", "location": "src/lib/two.ts"},
                    {"name": "three.ts", "location": "src/lib/three.ts"},
                ],
                "dependencies": ["zod"],
            }
        )
        source = make_source(manifest, {"one.ts": "1", "three.ts": "3"})
        runner = make_runner()

        with pytest.raises(FetchError, match="two.ts"):
            make_installer(project, source, runner=runner).install("o/r")

        assert not (project.root / "src" / "lib" / "one.ts").exists()
        assert not (project.root / "src").exists()
        assert runner.commands == []

    def test_dev_dependency_failure_uninstalls_dependencies(
        self,
        project: Project,
        package_json: Path,
        sample_manifest: PluginManifest,
        sample_files: dict[str, str],
        make_source,
        make_prompter,
        make_runner,
    ):
        """Rollback removes added packages, files and config edits."""
        original_package = package_json.read_text()
        runner = make_runner(fail_on="-D")

        with pytest.raises(PackageManagerError):
            make_installer(
                project, make_source(sample_manifest, sample_files), make_prompter(), runner
            ).install("example/tailwind")

        assert runner.commands == [
            ["npm", "install", "tailwindcss"],
            ["npm", "install", "-D", "postcss", "autoprefixer"],
            ["npm", "uninstall", "tailwindcss"],
        ]
        assert package_json.read_text() == original_package
        assert not (project.root / "tailwind.config.js").exists()

    def test_crlf_config_restored_byte_for_byte(
        self, project: Project, make_source, make_prompter, make_runner
    ):
        """Rollback writes back the exact bytes of an auto-applied CRLF file."""
        target = project.root / ".gitignore"
        original = b"node_modules\r\ndist\r\n"
        target.write_bytes(original)
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "configs": [{"targetFile": ".gitignore", "configSource": "ignore.fragment"}],
                "dependencies": ["zod"],
            }
        )
        source = make_source(manifest, {"ignore.fragment": "coverage\n"})
        runner = make_runner(fail_on="zod")

        with pytest.raises(PackageManagerError):
            make_installer(project, source, make_prompter(), runner).install("o/r")

        assert target.read_bytes() == original

    def test_overwritten_file_restored(self, project: Project, make_source):
        """A pre-existing destination gets its content back."""
        existing = project.root / "a.ts"
        existing.write_text("user content")
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "files": [
                    {"name": "a.ts", "location": "a.ts"},
                    {"name": "b.ts", "location": "b.ts"},
                ],
            }
        )

        with pytest.raises(FetchError):
            make_installer(project, make_source(manifest, {"a.ts": "plugin"})).install("o/r")

        assert existing.read_text() == "user content"

    def test_malformed_structured_target_rolls_back(
        self, project: Project, make_source, make_prompter
    ):
        """A parse failure during apply aborts the install."""
        (project.root / "package.json").write_text("{broken")
        manifest = PluginManifest.model_validate(
            {
                "platform": "react",
                "files": [{"name": "a.ts", "location": "a.ts"}],
                "configs": [{"targetFile": "package.json", "configSource": "frag.json"}],
            }
        )
        source = make_source(manifest, {"a.ts": "x", "frag.json": '{"a": 1}'})

        with pytest.raises(ReconcileError):
            make_installer(project, source, make_prompter()).install("o/r")

        assert not (project.root / "a.ts").exists()
        assert (project.root / "package.json").read_text() == "{broken"

    def test_rollback_failures_attached_as_notes(
        self, project: Project, make_source, make_prompter, make_runner
    ):
        """Rollback errors are reported but the original error is raised."""
        manifest = PluginManifest.model_validate(
            {"platform": "react", "dependencies": ["a"], "devDependencies": ["b"]}
        )
        calls: list[list[str]] = []

        def runner(cmd: list[str], cwd: Path) -> None:
            calls.append(cmd)
            if cmd[1] != "install" or "-D" in cmd:
                raise PackageManagerError(f"failed: {' '.join(cmd)}", command=cmd)

        prompter = make_prompter()
        installer = make_installer(project, make_source(manifest, {}), prompter, runner)

        with pytest.raises(PackageManagerError, match="npm install -D b") as exc_info:
            installer.install("o/r")

        assert calls[-1] == ["npm", "uninstall", "a"]
        assert any("uninstall a" in note for note in exc_info.value.__notes__)
        assert prompter.states[-2:] == [InstallState.ROLLING_BACK, InstallState.FAILED]

    def test_rejects_paths_outside_project(self, project: Project, make_source):
        """Manifest paths cannot escape the project root."""
        manifest = PluginManifest.model_validate(
            {"platform": "react", "files": [{"name": "x", "location": "../outside.txt"}]}
        )

        with pytest.raises(InstallError, match="outside the project"):
            make_installer(project, make_source(manifest, {"x": "x"})).install("o/r")

        assert not (project.root.parent / "outside.txt").exists()


class TestResolvePlugin:
    """Tests for resolve_plugin function."""

    @pytest.fixture
    def registry(self) -> PluginRegistry:
        return PluginRegistry(
            [
                RegistryEntry(name="tailwind", platform="react", github="acme/tailwind"),
                RegistryEntry(name="pinia", platform="vue", github="acme/pinia"),
            ]
        )

    def test_returns_compatible_entry(self, registry: PluginRegistry):
        assert resolve_plugin(registry, "tailwind", "react").github == "acme/tailwind"

    def test_unknown_plugin(self, registry: PluginRegistry):
        """An unknown name is a precondition failure."""
        with pytest.raises(PreconditionError, match='Plugin "nope" not found') as exc_info:
            resolve_plugin(registry, "nope", "react")

        assert exc_info.value.plugin_name == "nope"

    def test_platform_mismatch(self, registry: PluginRegistry):
        """A plugin for another platform raises PlatformMismatchError."""
        with pytest.raises(PlatformMismatchError) as exc_info:
            resolve_plugin(registry, "pinia", "react")

        assert isinstance(exc_info.value, PreconditionError)
        assert exc_info.value.plugin_platform == "vue"
        assert exc_info.value.project_platform == "react"
