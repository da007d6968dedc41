"""Structured key-value formats (JSON, JSONC, TOML, YAML).

All structured formats share one rule set: the fragment is parsed into a
tree and compared against the existing tree with
:func:`~bifrost_plugin.utils.tree.deep_includes`, then merged with
:func:`~bifrost_plugin.utils.tree.merge_values`. The insertion policy does
not apply to structured files.
"""

import json
import tomllib
from abc import abstractmethod
from typing import Any

import tomli_w
import yaml

from bifrost_plugin.config.schemas import InsertType
from bifrost_plugin.reconcile import register_format
from bifrost_plugin.reconcile.base import ConfigFormat, ReconcileError
from bifrost_plugin.utils.tree import deep_includes, merge_values


class StructuredFormat(ConfigFormat):
    """Base class for formats that parse into trees."""

    @abstractmethod
    def parse(self, content: str) -> Any:
        """Parse content into a tree.

        Raises:
            ReconcileError: If the content is malformed
        """
        ...

    @abstractmethod
    def serialize(self, tree: Any) -> str:
        """Serialize a tree back to text."""
        ...

    def is_applied(self, existing: str, fragment: str) -> bool:
        # Unparseable content on either side counts as "not applied"
        try:
            existing_tree = self.parse(existing)
            fragment_tree = self.parse(fragment)
        except ReconcileError:
            return False
        return deep_includes(existing_tree, fragment_tree)

    def apply(self, existing: str, fragment: str, insert_type: InsertType) -> str:
        merged = merge_values(self.parse(existing), self.parse(fragment))
        return self.serialize(merged)


@register_format("json")
class JsonFormat(StructuredFormat):
    """Plain JSON, written back with 2-space indentation."""

    @property
    def name(self) -> str:
        return "json"

    def parse(self, content: str) -> Any:
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ReconcileError(f"Invalid JSON: {e}", self.name) from e

    def serialize(self, tree: Any) -> str:
        return json.dumps(tree, indent=2, ensure_ascii=False) + "\n"


@register_format("jsonc")
class JsoncFormat(JsonFormat):
    """JSON with comments and trailing commas.

    Comments are not preserved when the file is rewritten.
    """

    @property
    def name(self) -> str:
        return "jsonc"

    def parse(self, content: str) -> Any:
        return super().parse(strip_jsonc(content))


@register_format("toml")
class TomlFormat(StructuredFormat):
    """TOML documents (top level is always a table)."""

    @property
    def name(self) -> str:
        return "toml"

    def parse(self, content: str) -> Any:
        try:
            return tomllib.loads(content)
        except tomllib.TOMLDecodeError as e:
            raise ReconcileError(f"Invalid TOML: {e}", self.name) from e

    def serialize(self, tree: Any) -> str:
        if not isinstance(tree, dict):
            raise ReconcileError("TOML document must be a table", self.name)
        try:
            return tomli_w.dumps(tree)
        except TypeError as e:
            # TOML has no null
            raise ReconcileError(f"Cannot write TOML: {e}", self.name) from e


@register_format("yaml")
class YamlFormat(StructuredFormat):
    """YAML documents. An empty document parses as null."""

    @property
    def name(self) -> str:
        return "yaml"

    def parse(self, content: str) -> Any:
        try:
            return yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ReconcileError(f"Invalid YAML: {e}", self.name) from e

    def serialize(self, tree: Any) -> str:
        result: str = yaml.safe_dump(
            tree, default_flow_style=False, sort_keys=False, allow_unicode=True
        )
        return result


def strip_jsonc(text: str) -> str:
    """Remove ``//`` and ``/* */`` comments and trailing commas from JSONC text.

    String literals are left untouched.
    """
    return _drop_trailing_commas(_drop_comments(text))


def _drop_comments(text: str) -> str:
    out: list[str] = []
    i = 0
    n = len(text)
    in_string = False

    while i < n:
        ch = text[i]
        if in_string:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if ch == '"':
                in_string = False
            i += 1
        elif ch == '"':
            in_string = True
            out.append(ch)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        else:
            out.append(ch)
            i += 1

    return "".join(out)


def _drop_trailing_commas(text: str) -> str:
    out: list[str] = []
    in_string = False
    escaped = False
    n = len(text)

    for i, ch in enumerate(text):
        if in_string:
            out.append(ch)
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == "," and _next_significant(text, i + 1, n) in ("}", "]"):
            continue
        out.append(ch)

    return "".join(out)


def _next_significant(text: str, start: int, n: int) -> str:
    """The first non-whitespace character at or after ``start``, or ""."""
    j = start
    while j < n and text[j].isspace():
        j += 1
    return text[j] if j < n else ""
