"""Content fingerprinting of build assets."""

import gzip
import hashlib
import logging
from collections.abc import Container, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

from .models import Asset

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 4


def compute_digest(data: bytes) -> str:
    """Hex-encoded SHA-256 of the given bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_gzip_size(data: bytes) -> int:
    """Size of the data after gzip compression.

    mtime is pinned so the result only depends on the content.
    """
    return len(gzip.compress(data, mtime=0))


def fingerprint_asset(output_root: Path, path: str, with_gzip: bool = False) -> Asset:
    """Fingerprint a single asset.

    Args:
        output_root: Root directory of the compiled web application.
        path: POSIX path relative to the output root.
        with_gzip: Also compute the compressed size.

    Raises:
        OSError: If the file cannot be read.
    """
    data = (Path(output_root) / path).read_bytes()
    return Asset(
        path=path,
        digest=compute_digest(data),
        size=len(data),
        gzip_size=compute_gzip_size(data) if with_gzip else None,
    )


def fingerprint_assets(
    output_root: Path,
    paths: Sequence[str],
    strategies: Container[str],
    workers: int = DEFAULT_WORKERS,
) -> list[Asset]:
    """Fingerprint assets concurrently.

    The compressed size is only computed for assets with a strategy. Assets
    that fail are logged and dropped.

    Args:
        output_root: Root directory of the compiled web application.
        paths: POSIX paths relative to the output root.
        strategies: Root-relative paths that carry a strategy.
        workers: Number of hashing threads.

    Returns:
        Fingerprinted assets sorted by path.
    """
    fingerprints: dict[str, Asset] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(fingerprint_asset, output_root, path, ("/" + path) in strategies): path
            for path in paths
        }

        for future in as_completed(futures):
            path = futures[future]
            try:
                asset = future.result()
            except Exception as e:
                logger.warning("Failed to hash asset %s: %s", path, e)
                continue
            if asset.size == 0:
                logger.warning("File size is 0 for asset: %s", path)
            fingerprints[path] = asset

    return [fingerprints[path] for path in sorted(fingerprints)]
