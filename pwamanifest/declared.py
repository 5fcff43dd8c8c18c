"""Explicitly declared asset strategies.

Declarations come from two sources: the inline ``pwa.assets`` list of the
YAML configuration and an optional XML project file of the form::

    <project>
      <pwa>
        <essential-assets>
          <asset strategy="critical">/css/app.css</asset>
          <asset>/images/logo.png</asset>
        </essential-assets>
      </pwa>
    </project>

A declaration without a strategy defaults to BACKGROUND.
"""

import logging
import xml.etree.ElementTree as ET
from collections.abc import Mapping
from pathlib import Path

from .models import CacheStrategy
from .references import to_root_relative

logger = logging.getLogger(__name__)

PROJECT_FILE_ASSET_PATH = "pwa/essential-assets/asset"


class DeclarationError(Exception):
    """Raised when a source of declared assets is malformed."""

    pass


def _parse_strategy(value: object, where: str) -> CacheStrategy:
    """Parse a declared strategy, defaulting to BACKGROUND when unset."""
    if value is None or not str(value).strip():
        return CacheStrategy.BACKGROUND
    try:
        return CacheStrategy.parse(str(value))
    except ValueError as e:
        raise DeclarationError(f"{where}: {e}")


def parse_declared_entries(entries: object) -> dict[str, CacheStrategy]:
    """Parse a list of declared assets.

    Each entry is either a path string or a mapping with a ``path`` key and
    an optional ``strategy`` key.

    Raises:
        DeclarationError: If the list or any entry is malformed.
    """
    if entries is None:
        return {}
    if not isinstance(entries, list):
        raise DeclarationError("declared assets must be a list")

    declared: dict[str, CacheStrategy] = {}
    for index, entry in enumerate(entries):
        if isinstance(entry, str):
            path, strategy = entry, None
        elif isinstance(entry, dict):
            path, strategy = entry.get("path"), entry.get("strategy")
        else:
            raise DeclarationError(f"asset entry {index} must be a string or a dictionary")

        if path is None or not str(path).strip():
            raise DeclarationError(f"asset entry {index} is missing 'path'")

        declared[to_root_relative(str(path))] = _parse_strategy(strategy, f"asset entry {index}")
    return declared


def parse_project_file(project_file: Path) -> dict[str, CacheStrategy]:
    """Read declared assets from an XML project file.

    Raises:
        DeclarationError: If the file cannot be read or parsed.
    """
    try:
        root = ET.parse(project_file).getroot()
    except ET.ParseError as e:
        raise DeclarationError(f"invalid XML: {e}")
    except OSError as e:
        raise DeclarationError(str(e))

    declared: dict[str, CacheStrategy] = {}
    for index, node in enumerate(root.findall(PROJECT_FILE_ASSET_PATH)):
        path = (node.text or "").strip()
        if not path:
            raise DeclarationError(f"asset element {index} has no path")
        declared[to_root_relative(path)] = _parse_strategy(node.get("strategy"), f"asset element {index}")
    return declared


def load_declared_strategies(
    inline: Mapping[str, CacheStrategy],
    project_file: Path | None = None,
) -> dict[str, CacheStrategy]:
    """Merge declared strategies from the project file and inline config.

    Inline declarations win over the project file for the same path. A
    malformed project file is logged and contributes nothing.
    """
    declared: dict[str, CacheStrategy] = {}

    if project_file is not None:
        try:
            from_file = parse_project_file(project_file)
        except DeclarationError as e:
            logger.warning("Failed to read %s for PWA configuration: %s", project_file, e)
        else:
            logger.debug("Read %d declared assets from %s", len(from_file), project_file)
            declared.update(from_file)

    declared.update(inline)
    return declared
