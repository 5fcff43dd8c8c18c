"""Tests for service worker rendering and output writing."""

import logging
import os
from pathlib import Path

import pytest

from pwamanifest.emitter import (
    EmitError,
    clear_entry_document,
    embed_manifest,
    render_service_worker,
    strip_embedded_manifest,
    update_entry_document,
    write_text_if_changed,
)

SCRIPT_OPEN = '<script type="application/json" id="pwa-asset-manifest">'


class TestRenderServiceWorker:
    """Tests for render_service_worker function."""

    def test_on_template_has_no_placeholders_left(self) -> None:
        js = render_service_worker(True, "2024-01-01T10:00:00Z", '{\n  "/a.js": "abc"\n}')

        assert "{{" not in js
        assert 'const BUILD_TIMESTAMP = "2024-01-01T10:00:00Z";' in js
        assert 'const ASSET_MANIFEST = {\n  "/a.js": "abc"\n};' in js

    def test_on_template_defaults_to_empty_manifest(self) -> None:
        js = render_service_worker(True, "ts")
        assert "const ASSET_MANIFEST = {};" in js

    def test_off_template_is_kill_switch(self) -> None:
        """Off variant unregisters the worker and drops caches."""
        js = render_service_worker(False, "")

        assert "{{" not in js
        assert "unregister()" in js
        assert "caches.delete" in js
        assert "ASSET_MANIFEST" not in js

    def test_timestamp_is_escaped(self) -> None:
        js = render_service_worker(True, 'a"b\\c')
        assert 'const BUILD_TIMESTAMP = "a\\"b\\\\c";' in js

    def test_is_deterministic(self) -> None:
        assert render_service_worker(True, "ts", "{}") == render_service_worker(True, "ts", "{}")


class TestEmbedManifest:
    """Tests for embed_manifest and strip_embedded_manifest functions."""

    def test_inserts_before_head_close(self) -> None:
        html = "<html><head><title>x</title></head><body></body></html>"
        expected = (
            f"<html><head><title>x</title>{SCRIPT_OPEN}{{}}</script>\n</head><body></body></html>"
        )
        assert embed_manifest(html, "{}") == expected

    def test_falls_back_to_body_close(self) -> None:
        html = "<body><p>hi</p></BODY>"
        assert embed_manifest(html, "{}") == f"<body><p>hi</p>{SCRIPT_OPEN}{{}}</script>\n</BODY>"

    def test_falls_back_to_html_close(self) -> None:
        html = "<html>text</html>"
        assert embed_manifest(html, "{}") == f"<html>text{SCRIPT_OPEN}{{}}</script>\n</html>"

    def test_appends_without_anchor(self) -> None:
        assert embed_manifest("plain", "{}") == f"plain{SCRIPT_OPEN}{{}}</script>\n"

    def test_escapes_closing_tags(self) -> None:
        """JSON containing "</" cannot terminate the script element."""
        embedded = embed_manifest("<head></head>", '{"/x</script>.js": "h"}')
        assert '"/x<\\/script>.js"' in embedded

    def test_replaces_previous_payload(self) -> None:
        """Embedding twice keeps a single, current payload."""
        html = "<html><head></head><body></body></html>"
        first = embed_manifest(html, '{"/a.js": "1"}')
        second = embed_manifest(first, '{"/a.js": "2"}')

        assert second.count(SCRIPT_OPEN) == 1
        assert '"2"' in second
        assert '"1"' not in second

    def test_is_idempotent(self) -> None:
        html = "<html><head></head><body></body></html>"
        once = embed_manifest(html, '{\n  "/a.js": "h"\n}')
        assert embed_manifest(once, '{\n  "/a.js": "h"\n}') == once

    def test_strip_restores_original(self) -> None:
        html = "<html><head><meta charset='utf-8'></head></html>"
        assert strip_embedded_manifest(embed_manifest(html, "{}")) == html


class TestWriteTextIfChanged:
    """Tests for write_text_if_changed function."""

    def test_writes_new_file(self, tmp_path: Path) -> None:
        path = tmp_path / "sub" / "sw.js"
        assert write_text_if_changed(path, "content") is True
        assert path.read_text() == "content"

    def test_skips_identical_content(self, tmp_path: Path) -> None:
        """Unchanged content leaves the file and its mtime alone."""
        path = tmp_path / "sw.js"
        path.write_text("content")
        os.utime(path, ns=(1_000_000_000, 1_000_000_000))

        assert write_text_if_changed(path, "content") is False
        assert path.stat().st_mtime_ns == 1_000_000_000

    def test_rewrites_changed_content(self, tmp_path: Path) -> None:
        path = tmp_path / "sw.js"
        path.write_text("old")
        assert write_text_if_changed(path, "new") is True
        assert path.read_text() == "new"

    def test_dry_run_writes_nothing(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "sw.js"
        with caplog.at_level(logging.INFO):
            assert write_text_if_changed(path, "content", dry_run=True) is True
        assert not path.exists()
        assert "Would write" in caplog.text

    def test_unwritable_target_raises(self, tmp_path: Path) -> None:
        """A directory in place of the output file is a fatal error."""
        path = tmp_path / "sw.js"
        path.mkdir()
        with pytest.raises(EmitError, match="Failed to write"):
            write_text_if_changed(path, "content")


class TestUpdateEntryDocument:
    """Tests for update_entry_document function."""

    def test_embeds_manifest(self, tmp_path: Path) -> None:
        path = tmp_path / "index.html"
        path.write_text("<html><head></head></html>")

        assert update_entry_document(path, "{}") is True
        assert path.read_text() == f"<html><head>{SCRIPT_OPEN}{{}}</script>\n</head></html>"
        assert update_entry_document(path, "{}") is False

    def test_missing_document(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING):
            assert update_entry_document(tmp_path / "index.html", "{}") is None
        assert "Entry document not found" in caplog.text

    def test_undecodable_document(self, tmp_path: Path) -> None:
        path = tmp_path / "index.html"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(EmitError, match="Failed to read"):
            update_entry_document(path, "{}")


class TestClearEntryDocument:
    """Tests for clear_entry_document function."""

    def test_removes_embedded_manifest(self, tmp_path: Path) -> None:
        path = tmp_path / "index.html"
        html = "<html><head></head></html>"
        path.write_text(embed_manifest(html, "{}"))

        assert clear_entry_document(path) is True
        assert path.read_text() == html

    def test_document_without_payload_is_untouched(self, tmp_path: Path) -> None:
        """Documents without a payload are not even decoded."""
        path = tmp_path / "index.html"
        path.write_bytes(b"<html>\xff</html>")
        os.utime(path, ns=(1_000_000_000, 1_000_000_000))

        assert clear_entry_document(path) is False
        assert path.stat().st_mtime_ns == 1_000_000_000

    def test_missing_document(self, tmp_path: Path) -> None:
        assert clear_entry_document(tmp_path / "index.html") is False

    def test_dry_run(self, tmp_path: Path) -> None:
        path = tmp_path / "index.html"
        embedded = embed_manifest("<head></head>", "{}")
        path.write_text(embedded)

        assert clear_entry_document(path, dry_run=True) is True
        assert path.read_text() == embedded
