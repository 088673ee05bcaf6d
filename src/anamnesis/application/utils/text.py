"""
Markdown frontmatter helpers.

Notes keep their SRS state in YAML frontmatter. Reading never raises: a block
that does not parse comes back as `{YAML_ERROR_KEY: reason}` so callers can
skip the note. Writing keeps key order and every key other tools put there.
"""

from typing import Any

import yaml  # type: ignore
import yaml.constructor

FENCE = "---"
YAML_ERROR_KEY = "__yaml_error__"


class StrictLoader(yaml.SafeLoader):
    """SafeLoader that refuses duplicate mapping keys instead of keeping the last one."""

    def construct_mapping(self, node, deep=False):
        seen = set()
        for key_node, _ in node.value:
            key = self.construct_object(key_node, deep=deep)
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key '{key}'",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep)


def split_frontmatter(text: str) -> tuple[str, str] | None:
    """(yaml, body) for a note that opens with a closed `---` block, else None."""
    head, newline, rest = text.partition("\n")
    if head.strip() != FENCE or not newline:
        return None

    lines = rest.split("\n")
    for i, line in enumerate(lines):
        if line.strip() == FENCE:
            return "\n".join(lines[:i]), "\n".join(lines[i + 1 :])
    return None


def parse_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Returns (meta, body). Without frontmatter that is ({}, text); when the
    block does not parse it is ({YAML_ERROR_KEY: message}, text).
    """
    text = text.lstrip("\ufeff")
    parts = split_frontmatter(text)
    if parts is None:
        return {}, text

    raw, body = parts
    # YAML forbids tab indentation, Obsidian users type it anyway.
    raw = raw.replace("\t", "  ")

    try:
        meta = yaml.load(raw, Loader=StrictLoader)
    except yaml.YAMLError as e:
        return {YAML_ERROR_KEY: str(e)}, text

    if meta is None:
        return {}, body
    if not isinstance(meta, dict):
        return {YAML_ERROR_KEY: "frontmatter is not a mapping"}, text
    return meta, body


def scrub_internal_keys(value: Any) -> Any:
    """Drop `__`-prefixed bookkeeping keys at any depth."""
    if isinstance(value, dict):
        return {k: scrub_internal_keys(v) for k, v in value.items() if not _is_internal(k)}
    if isinstance(value, list):
        return [scrub_internal_keys(v) for v in value]
    return value


def _is_internal(key: Any) -> bool:
    return isinstance(key, str) and key.startswith("__")


def rebuild_markdown_with_frontmatter(meta: dict[str, Any], body: str) -> str:
    dumped = yaml.safe_dump(
        scrub_internal_keys(meta),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
        width=float("inf"),
    )
    return f"{FENCE}\n{dumped}{FENCE}\n{body}"
