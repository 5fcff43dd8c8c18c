"""Service worker rendering and idempotent output writing.

Every write compares the new content with the file on disk first, so an
unchanged build leaves modification times untouched. Unlike scanning and
hashing, write failures are fatal: a missing or stale service worker
silently breaks offline support.
"""

import json
import logging
import re
from pathlib import Path

from ._templates import SERVICE_WORKER_OFF_JS, SERVICE_WORKER_ON_JS

logger = logging.getLogger(__name__)

BUILD_TIMESTAMP_PLACEHOLDER = "{{buildTimestamp}}"
ASSET_MANIFEST_PLACEHOLDER = "{{assetManifest}}"

MANIFEST_SCRIPT_ID = "pwa-asset-manifest"
_MANIFEST_SCRIPT_OPEN = f'<script type="application/json" id="{MANIFEST_SCRIPT_ID}">'
_EMBEDDED_MANIFEST = re.compile(re.escape(_MANIFEST_SCRIPT_OPEN) + r".*?</script>\n?", re.DOTALL)

# Insertion anchors, most preferred first.
_ANCHORS = (
    re.compile(r"</head\s*>", re.IGNORECASE),
    re.compile(r"</body\s*>", re.IGNORECASE),
    re.compile(r"</html\s*>", re.IGNORECASE),
)


class EmitError(Exception):
    """Raised when an output file cannot be written."""

    pass


def render_service_worker(pwa_enabled: bool, build_timestamp: str, manifest_json: str | None = None) -> str:
    """Instantiate the service worker template.

    Args:
        pwa_enabled: Selects the "on" template, else the kill-switch template.
        build_timestamp: Value for the {{buildTimestamp}} placeholder.
        manifest_json: Serialized manifest; an empty object when None.

    Returns:
        Service worker source code.
    """
    template = SERVICE_WORKER_ON_JS if pwa_enabled else SERVICE_WORKER_OFF_JS
    # Timestamp lands inside a JS string literal
    timestamp = json.dumps(build_timestamp, ensure_ascii=False)[1:-1]
    return template.replace(BUILD_TIMESTAMP_PLACEHOLDER, timestamp).replace(
        ASSET_MANIFEST_PLACEHOLDER, manifest_json if manifest_json is not None else "{}"
    )


def strip_embedded_manifest(html: str) -> str:
    """Remove a manifest payload embedded by a previous run."""
    return _EMBEDDED_MANIFEST.sub("", html)


def embed_manifest(html: str, manifest_json: str) -> str:
    """Embed the manifest as an inline JSON script in the entry document.

    The payload goes right before the closing head tag, else the closing
    body tag, else the closing html tag, else at the end of the document.
    Any previously embedded payload is replaced, so embedding is idempotent.
    """
    html = strip_embedded_manifest(html)
    # "</" would end the script element early
    payload = _MANIFEST_SCRIPT_OPEN + manifest_json.replace("</", "<\\/") + "</script>\n"

    for anchor in _ANCHORS:
        match = anchor.search(html)
        if match:
            return html[: match.start()] + payload + html[match.start():]
    return html + payload


def write_text_if_changed(path: Path, content: str, dry_run: bool = False) -> bool:
    """Write a UTF-8 text file unless it already has this exact content.

    Args:
        path: Output file path; parent directories are created.
        content: New file content.
        dry_run: Only report whether the file would change.

    Returns:
        True if the file was (or would be) written, False if unchanged.

    Raises:
        EmitError: If the file cannot be written.
    """
    path = Path(path)
    encoded = content.encode("utf-8")

    try:
        if path.is_file() and path.read_bytes() == encoded:
            logger.debug("Unchanged: %s", path)
            return False
    except OSError as e:
        logger.debug("Cannot compare with existing %s: %s", path, e)

    if dry_run:
        logger.info("Would write %s", path)
        return True

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(encoded)
    except OSError as e:
        raise EmitError(f"Failed to write {path}: {e}") from e

    logger.info("Wrote %s", path)
    return True


def _read_entry_document(path: Path) -> str:
    try:
        return path.read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise EmitError(f"Failed to read {path}: {e}") from e


def update_entry_document(entry_document: Path, manifest_json: str, dry_run: bool = False) -> bool | None:
    """Embed the manifest into the entry document in place.

    Returns:
        Whether the document changed, or None if it does not exist.

    Raises:
        EmitError: If the document exists but cannot be read or written.
    """
    path = Path(entry_document)
    if not path.is_file():
        logger.warning("Entry document not found at: %s", path)
        return None

    html = _read_entry_document(path)
    return write_text_if_changed(path, embed_manifest(html, manifest_json), dry_run=dry_run)


def clear_entry_document(entry_document: Path, dry_run: bool = False) -> bool:
    """Remove a manifest embedded by an earlier run from the entry document.

    Returns:
        Whether the document changed. A missing document is left alone.

    Raises:
        EmitError: If the document exists but cannot be read or written.
    """
    path = Path(entry_document)
    if not path.is_file():
        return False

    try:
        if _MANIFEST_SCRIPT_OPEN.encode("utf-8") not in path.read_bytes():
            return False
    except OSError as e:
        raise EmitError(f"Failed to read {path}: {e}") from e

    html = _read_entry_document(path)
    return write_text_if_changed(path, strip_embedded_manifest(html), dry_run=dry_run)
