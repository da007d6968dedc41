"""Environment-variable files (.env).

Only keys are reconciled. A fragment line counts as present when the
existing file already defines the same key, whatever its value.
"""

from bifrost_plugin.config.schemas import InsertType
from bifrost_plugin.reconcile import register_format
from bifrost_plugin.reconcile.base import ConfigFormat


def fragment_lines(content: str) -> list[str]:
    """Non-blank, non-comment lines of a fragment, kept verbatim."""
    return [
        line
        for line in content.split("\n")
        if line.strip() and not line.strip().startswith("#")
    ]


def line_key(line: str) -> str:
    """The variable name of an assignment line (text before the first ``=``)."""
    return line.split("=", 1)[0].strip()


def defined_keys(content: str) -> set[str]:
    """Keys assigned anywhere in ``content``."""
    return {line_key(line) for line in content.split("\n") if "=" in line}


@register_format("env")
class EnvFormat(ConfigFormat):
    """Dotenv files. The insertion policy is ignored."""

    @property
    def name(self) -> str:
        return "env"

    def is_applied(self, existing: str, fragment: str) -> bool:
        existing_lines = [line.strip() for line in existing.split("\n")]
        for line in fragment_lines(fragment):
            key = line.strip().split("=", 1)[0]
            if not any(current.startswith(f"{key}=") for current in existing_lines):
                return False
        return True

    def apply(self, existing: str, fragment: str, insert_type: InsertType) -> str:
        present = defined_keys(existing)
        missing = [line for line in fragment_lines(fragment) if line_key(line) not in present]
        if not missing:
            return existing
        return existing + "\n\n" + "\n".join(missing)
