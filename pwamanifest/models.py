"""Data models for asset fingerprinting and manifest generation."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path


class CacheStrategy(StrEnum):
    """How the service worker precaches an asset.

    CRITICAL assets must be cached before the application can run offline.
    BACKGROUND assets are fetched once the critical set is ready.
    Assets without a strategy are listed by hash only.
    """

    CRITICAL = "CRITICAL"
    BACKGROUND = "BACKGROUND"

    @classmethod
    def parse(cls, value: str) -> "CacheStrategy":
        """Parse a strategy name case-insensitively.

        Raises:
            ValueError: If the value is not a known strategy.
        """
        normalized = str(value).strip().upper()
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown cache strategy '{value}' (expected one of: {', '.join(cls)})")


@dataclass(frozen=True)
class Asset:
    """A fingerprinted file from the build output tree.

    Attributes:
        path: POSIX path relative to the output root (e.g. "js/app.js").
        digest: Hex-encoded SHA-256 of the file content.
        size: Raw size in bytes.
        gzip_size: Size after gzip compression, or None if not computed.
    """

    path: str
    digest: str
    size: int
    gzip_size: int | None = None

    @property
    def url_path(self) -> str:
        """Root-relative path used as manifest key."""
        return "/" + self.path


@dataclass(frozen=True)
class BuildContext:
    """Per-invocation build inputs, read-only once created.

    Attributes:
        build_timestamp: Timestamp string from the build properties.
        pwa_enabled: Whether PWA mode is on for this build.
        output_root: Root of the compiled web application.
        entry_document: Path of the entry HTML document.
        project_id: Artifact identifier ("<artifact>-<version>"), if known.
    """

    build_timestamp: str
    pwa_enabled: bool
    output_root: Path
    entry_document: Path
    project_id: str | None = None

    @property
    def entry_relpath(self) -> str:
        """Entry document path relative to the output root, POSIX style."""
        try:
            return self.entry_document.relative_to(self.output_root).as_posix()
        except ValueError:
            return self.entry_document.name


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generator run.

    Attributes:
        pwa_enabled: Whether PWA mode was on.
        assets: Fingerprinted assets in manifest order.
        manifest_json: Serialized manifest, or None when PWA mode is off.
        outputs: Output file path mapped to whether its content changed.
    """

    pwa_enabled: bool
    assets: list[Asset] = field(default_factory=list)
    manifest_json: str | None = None
    outputs: dict[Path, bool] = field(default_factory=dict)

    @property
    def changed(self) -> list[Path]:
        """Output files whose content was (or would be) rewritten."""
        return [path for path, changed in self.outputs.items() if changed]
