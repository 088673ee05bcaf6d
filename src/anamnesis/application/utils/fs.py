from collections.abc import Iterable, Iterator
from pathlib import Path


def iter_markdown_files(root: Path, exclude_folders: Iterable[str] = ()) -> Iterator[Path]:
    """
    Yield every markdown file under root in sorted order, skipping hidden
    folders (.obsidian, .anamnesis, ...) and excluded folders.

    An exclude entry without a slash matches a folder of that name at any
    depth; `a/b` matches that vault-relative folder and everything below it.
    """
    names = {f.strip("/") for f in exclude_folders if "/" not in f.strip("/")}
    prefixes = {f.strip("/") for f in exclude_folders if "/" in f.strip("/")}

    for path in sorted(root.rglob("*.md")):
        rel_parts = path.relative_to(root).parts[:-1]
        if any(part.startswith(".") or part in names for part in rel_parts):
            continue
        rel_dir = "/".join(rel_parts)
        if any(rel_dir == p or rel_dir.startswith(p + "/") for p in prefixes):
            continue
        if path.is_file():
            yield path
