"""Extraction of script and stylesheet references from the entry document.

Matching is regex-based and deliberately tolerant: malformed markup yields
fewer references, never an error.
"""

import logging
import posixpath
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_SCRIPT_TAG = re.compile(r"<script\b[^>]*>", re.IGNORECASE)
_LINK_TAG = re.compile(r"<link\b[^>]*>", re.IGNORECASE)

# (?<![\w-]) keeps "data-src" and similar attributes from matching.
_SRC_ATTR = re.compile(r"""(?<![\w-])src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_HREF_ATTR = re.compile(r"""(?<![\w-])href\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_REL_ATTR = re.compile(r"""(?<![\w-])rel\s*=\s*["']([^"']*)["']""", re.IGNORECASE)

_URL_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def is_absolute_url(reference: str) -> bool:
    """Return True for scheme-prefixed or protocol-relative URLs."""
    return reference.startswith("//") or bool(_URL_SCHEME.match(reference))


def to_root_relative(reference: str, base_dir: str = "") -> str:
    """Normalize a relative reference to root-relative form.

    Relative references resolve against base_dir, the directory of the
    referencing document relative to the output root: with base_dir "app",
    "main.js" becomes "/app/main.js" and "../lib.js" becomes "/lib.js".
    Query strings and fragments are dropped.
    """
    path = reference.strip()
    for separator in ("?", "#"):
        path = path.split(separator, 1)[0]
    if path.startswith("/"):
        return path
    resolved = posixpath.normpath(posixpath.join("/", base_dir, path))
    # normpath keeps a leading "//"
    return "/" + resolved.lstrip("/")


def _normalized(reference: str, base_dir: str) -> str | None:
    reference = reference.strip()
    if not reference or is_absolute_url(reference):
        return None
    path = to_root_relative(reference, base_dir)
    return path if path != "/" else None


def extract_references(html: str, base_dir: str = "") -> list[str]:
    """Extract root-relative script and stylesheet references.

    Args:
        html: Text of the entry HTML document.
        base_dir: Directory of the document relative to the output root.

    Returns:
        Deduplicated references, scripts first, each in document order.
    """
    found: dict[str, None] = {}

    for tag in _SCRIPT_TAG.finditer(html):
        match = _SRC_ATTR.search(tag.group(0))
        if match:
            path = _normalized(match.group(1), base_dir)
            if path:
                found.setdefault(path)

    for tag in _LINK_TAG.finditer(html):
        text = tag.group(0)
        rel = _REL_ATTR.search(text)
        if rel is None or "stylesheet" not in rel.group(1).lower().split():
            continue
        match = _HREF_ATTR.search(text)
        if match:
            path = _normalized(match.group(1), base_dir)
            if path:
                found.setdefault(path)

    return list(found)


def read_references(entry_document: Path, base_dir: str = "") -> list[str]:
    """Read the entry document and extract its references.

    A missing or unreadable document is logged and yields no references.
    """
    try:
        html = Path(entry_document).read_bytes().decode("utf-8")
    except FileNotFoundError:
        logger.warning("Entry document not found, no references detected: %s", entry_document)
        return []
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to parse %s for asset references: %s", entry_document, e)
        return []

    references = extract_references(html, base_dir)
    for reference in references:
        logger.debug("Auto-detected critical asset from %s: %s", Path(entry_document).name, reference)
    return references
