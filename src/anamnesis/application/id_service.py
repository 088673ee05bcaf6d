"""Identifiers for items, focus sessions and similarity groups."""

import hashlib
import re
from collections.abc import Iterable
from pathlib import PurePosixPath

from ulid import ULID


def _simple_hash(text: str) -> str:
    # 32-bit rolling hash over UTF-16 code units, shared with the embeddings index.
    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h << 5) - h + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return format(abs(h), "x").zfill(8)


def generate_item_id(path: str) -> str:
    """
    Derive the 8-hex-digit item id for a vault-relative note path.

    The `.md` extension is ignored, so `Topics/Bias.md` and `Topics/Bias`
    map to the same id.
    """
    return _simple_hash(re.sub(r"\.md$", "", path))


def to_safe_id(item_id: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    return re.sub(r"[^a-zA-Z0-9\-_]", "_", item_id)


def extract_title(path: str) -> str:
    """`04_Zettelkasten/Cognitive bias.md` -> `Cognitive bias`."""
    name = PurePosixPath(path.replace("\\", "/")).name
    return re.sub(r"\.md$", "", name)


def generate_session_id() -> str:
    """Generate a unique focus-session id using ULID."""
    return f"session_{ULID()}"


def generate_group_id(item_ids: Iterable[str]) -> str:
    """
    Content-derived group id: identical membership always yields the same id,
    so per-cluster review dates survive restarts.
    """
    digest = hashlib.sha1("\n".join(sorted(item_ids)).encode("utf-8")).hexdigest()
    return f"group_{digest[:12]}"
