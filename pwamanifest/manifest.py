"""Asset manifest assembly and serialization.

Manifest format, keyed by root-relative path in code-point order::

    {
      "/images/bg.png": "<sha256>",
      "/app.nocache.js": {"strategy": "CRITICAL", "hash": "<sha256>", "size": 812, "gzipSize": 402}
    }

Assets without a strategy map to their bare hash.
"""

import json
from collections.abc import Iterable, Mapping

from .models import Asset, CacheStrategy

ManifestEntry = str | dict[str, str | int]


def build_manifest(assets: Iterable[Asset], strategies: Mapping[str, CacheStrategy]) -> dict[str, ManifestEntry]:
    """Build the ordered manifest mapping.

    Args:
        assets: Fingerprinted assets.
        strategies: Resolved strategies keyed by root-relative path.

    Returns:
        Mapping of root-relative path to hash or strategy record, sorted by path.
    """
    manifest: dict[str, ManifestEntry] = {}
    for asset in sorted(assets, key=lambda a: a.path):
        strategy = strategies.get(asset.url_path)
        if strategy is None:
            manifest[asset.url_path] = asset.digest
        else:
            manifest[asset.url_path] = {
                "strategy": str(strategy),
                "hash": asset.digest,
                "size": asset.size,
                "gzipSize": asset.gzip_size or 0,
            }
    return manifest


def _encode(value: object) -> str:
    return json.dumps(value, ensure_ascii=False)


def serialize_manifest(manifest: Mapping[str, ManifestEntry]) -> str:
    """Serialize a manifest to JSON, one entry per line.

    Output only depends on the manifest content: keys are re-sorted and
    strategy records keep a fixed field order.
    """
    if not manifest:
        return "{}"
    lines = [f"  {_encode(path)}: {_encode(manifest[path])}" for path in sorted(manifest)]
    return "{\n" + ",\n".join(lines) + "\n}"
