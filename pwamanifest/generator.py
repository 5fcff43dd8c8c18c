"""Asset manifest and service worker generation pipeline.

One run is a sequential batch job:
scan -> resolve strategies -> fingerprint -> build manifest -> emit.
"""

import logging
import posixpath

from .config import Config, create_build_context
from .declared import load_declared_strategies
from .emitter import clear_entry_document, render_service_worker, update_entry_document, write_text_if_changed
from .fingerprint import fingerprint_assets
from .manifest import build_manifest, serialize_manifest
from .models import Asset, BuildContext, GenerationResult
from .references import read_references
from .scanner import scan_assets
from .strategy import declared_source, pattern_source, referenced_source, resolve_strategies

logger = logging.getLogger(__name__)


def build_asset_manifest(config: Config, context: BuildContext) -> tuple[list[Asset], str]:
    """Scan, classify and fingerprint the output tree.

    Args:
        config: Loaded configuration.
        context: Context of the current build.

    Returns:
        Tuple of (fingerprinted assets, serialized manifest).
    """
    declared = load_declared_strategies(config.pwa.assets, config.project_file_path)

    references = []
    if context.entry_document.exists():
        references = read_references(context.entry_document, posixpath.dirname(context.entry_relpath))
        logger.info("Auto-detected %d critical assets from %s", len(references), context.entry_relpath)

    excluded = [context.entry_relpath, *config.pwa.generated_files]
    paths = scan_assets(context.output_root, excluded=excluded)

    strategies = resolve_strategies(
        ["/" + path for path in paths],
        [
            declared_source(declared),
            referenced_source(references),
            pattern_source(config.pwa.critical_patterns),
        ],
    )

    assets = fingerprint_assets(context.output_root, paths, strategies, workers=config.pwa.workers)
    managed = sum(1 for asset in assets if asset.url_path in strategies)
    logger.info("Fingerprinted %d assets (%d with a cache strategy)", len(assets), managed)

    return assets, serialize_manifest(build_manifest(assets, strategies))


def generate(config: Config, dry_run: bool = False) -> GenerationResult:
    """Generate the service worker, manifest file and updated entry document.

    Args:
        config: Loaded configuration.
        dry_run: Compute everything but write nothing.

    Returns:
        GenerationResult describing the assets and which outputs changed.

    Raises:
        ConfigError: If build properties are missing or invalid.
        EmitError: If an output file cannot be written.
    """
    context = create_build_context(config)
    logger.info("PWA mode is %s", "on" if context.pwa_enabled else "off")

    service_worker_path = context.output_root / config.pwa.service_worker
    outputs = {}

    if not context.pwa_enabled:
        service_worker = render_service_worker(False, context.build_timestamp)
        outputs[service_worker_path] = write_text_if_changed(service_worker_path, service_worker, dry_run=dry_run)
        return GenerationResult(pwa_enabled=False, outputs=outputs)

    assets, manifest_json = build_asset_manifest(config, context)

    service_worker = render_service_worker(True, context.build_timestamp, manifest_json)
    outputs[service_worker_path] = write_text_if_changed(service_worker_path, service_worker, dry_run=dry_run)

    if config.pwa.manifest_file is not None:
        manifest_path = context.output_root / config.pwa.manifest_file
        outputs[manifest_path] = write_text_if_changed(manifest_path, manifest_json + "\n", dry_run=dry_run)

    if config.pwa.embed_in_entry:
        changed = update_entry_document(context.entry_document, manifest_json, dry_run=dry_run)
        if changed is not None:
            outputs[context.entry_document] = changed
    elif clear_entry_document(context.entry_document, dry_run=dry_run):
        # Embedding was turned off after an earlier run
        outputs[context.entry_document] = True

    return GenerationResult(
        pwa_enabled=True,
        assets=assets,
        manifest_json=manifest_json,
        outputs=outputs,
    )
