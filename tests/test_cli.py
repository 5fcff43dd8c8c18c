"""Tests for the command line interface."""

import json
from pathlib import Path

import pytest

from pwamanifest import main

CONFIG_TEMPLATE = """
project:
  directory: "{directory}"
build:
  properties: "build.properties"
  output_root: "www"
pwa:
  assets:
    - path: "/logo.png"
      strategy: "background"
"""


@pytest.fixture
def config_path(tmp_path: Path) -> str:
    """Project with a config file, build properties and an output tree."""
    www = tmp_path / "www"
    www.mkdir()
    (www / "index.html").write_text('<html><head><script src="app.js"></script></head></html>')
    (www / "app.js").write_bytes(b"app")
    (www / "logo.png").write_bytes(b"logo")
    (tmp_path / "build.properties").write_text("pwa=true\nbuildTimestamp=20240101\n")

    path = tmp_path / "pwamanifest.yaml"
    path.write_text(CONFIG_TEMPLATE.format(directory=tmp_path.as_posix()))
    return str(path)


class TestGenerateCommand:
    """Tests for the generate subcommand."""

    def test_writes_outputs(self, config_path: str, tmp_path: Path) -> None:
        main(["generate", "-c", config_path])

        www = tmp_path / "www"
        assert (www / "pwa-service-worker.js").exists()
        manifest = json.loads((www / "pwa-asset.json").read_text())
        assert manifest["/app.js"]["strategy"] == "CRITICAL"
        assert manifest["/logo.png"]["strategy"] == "BACKGROUND"

    def test_dry_run(self, config_path: str, tmp_path: Path) -> None:
        main(["generate", "-c", config_path, "--dry-run"])
        assert not (tmp_path / "www" / "pwa-service-worker.js").exists()

    def test_missing_config_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", "-c", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1

    def test_missing_properties_exits(self, config_path: str, tmp_path: Path) -> None:
        (tmp_path / "build.properties").unlink()
        with pytest.raises(SystemExit) as exc_info:
            main(["generate", "-c", config_path])
        assert exc_info.value.code == 1


class TestManifestCommand:
    """Tests for the manifest subcommand."""

    def test_prints_manifest(self, config_path: str, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        main(["manifest", "-c", config_path])

        out = capsys.readouterr().out
        manifest = json.loads(out[out.index("{"):])
        assert set(manifest) == {"/app.js", "/logo.png"}
        assert not (tmp_path / "www" / "pwa-asset.json").exists()

    def test_config_error(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["manifest", "-c", str(tmp_path / "missing.yaml")])
        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().err


class TestCheckCommand:
    """Tests for the check subcommand."""

    def test_stale_outputs_fail(self, config_path: str, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "-c", config_path])

        assert exc_info.value.code == 1
        assert "STALE" in capsys.readouterr().out

    def test_up_to_date_outputs_pass(self, config_path: str, capsys: pytest.CaptureFixture) -> None:
        main(["generate", "-c", config_path])
        capsys.readouterr()

        main(["check", "-c", config_path])

        assert "all 3 outputs up to date" in capsys.readouterr().out


class TestVersion:
    """Tests for the --version flag."""

    def test_prints_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])
        assert exc_info.value.code == 0
        assert "pwamanifest" in capsys.readouterr().out
