"""Build output scanning for manifest candidates."""

import logging
import os
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)

# Source maps and plain text files are never served to offline clients.
IGNORED_SUFFIXES = (".map", ".txt")


def is_eligible(name: str) -> bool:
    """Check whether a file name may appear in the manifest."""
    lowered = name.lower()
    return not lowered.startswith(".") and not lowered.endswith(IGNORED_SUFFIXES)


def scan_assets(output_root: Path, excluded: Iterable[str] = ()) -> list[str]:
    """List eligible files under the output root.

    Args:
        output_root: Root directory of the compiled web application.
        excluded: POSIX relative paths to leave out (entry document and
            generated files).

    Returns:
        Sorted, deduplicated POSIX paths relative to the output root. Empty
        if the root is missing or unreadable.
    """
    root = Path(output_root)
    if not root.is_dir():
        logger.warning("Output directory not found: %s", root)
        return []

    excluded_paths = set(excluded)
    found: set[str] = set()

    def _on_error(error: OSError) -> None:
        logger.warning("Cannot read directory %s: %s", error.filename, error.strerror)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=_on_error):
        directory = Path(dirpath)
        for name in filenames:
            if not is_eligible(name):
                continue
            path = directory / name
            if not path.is_file():
                continue
            relative = path.relative_to(root).as_posix()
            if relative in excluded_paths:
                continue
            found.add(relative)

    logger.debug("Found %d eligible assets under %s", len(found), root)
    return sorted(found)
