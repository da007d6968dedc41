"""Filesystem utilities for Bifrost."""

from pathlib import Path


def ensure_directory(path: Path) -> list[Path]:
    """Ensure a directory exists, creating it if necessary.

    Args:
        path: Directory path to ensure exists

    Returns:
        The directories that had to be created, outermost first
    """
    missing: list[Path] = []
    current = path
    while not current.exists() and current != current.parent:
        missing.append(current)
        current = current.parent

    path.mkdir(parents=True, exist_ok=True)
    return list(reversed(missing))


def remove_file(path: Path) -> bool:
    """Remove a file.

    Args:
        path: File path to remove

    Returns:
        True if the file was removed, False if it didn't exist
    """
    if not path.exists():
        return False
    path.unlink()
    return True


def remove_empty_directory(path: Path) -> bool:
    """Remove a directory only if it is empty.

    Returns:
        True if the directory was removed
    """
    if not path.is_dir() or any(path.iterdir()):
        return False
    path.rmdir()
    return True


def read_text_file(path: Path) -> str:
    """Read a text file.

    Line endings are returned as stored, so CRLF files survive a
    read/write round trip.

    Args:
        path: Path to the file

    Returns:
        File contents as a string
    """
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_text_file(path: Path, content: str) -> None:
    """Write content to a text file without translating line endings.

    Args:
        path: Path to the file
        content: Content to write
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(content)
