"""Configuration loader with type-safe dataclasses."""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .declared import DeclarationError, parse_declared_entries
from .models import BuildContext, CacheStrategy

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration is invalid or cannot be loaded."""

    pass


DEFAULT_PROPERTIES_PATH = "target/classes/build.properties"
DEFAULT_ENTRY_DOCUMENT = "index.html"
DEFAULT_SERVICE_WORKER = "pwa-service-worker.js"
DEFAULT_MANIFEST_FILE = "pwa-asset.json"
DEFAULT_WORKERS = 4

# Build timestamp keys, in lookup order. The Maven build writes the first.
BUILD_TIMESTAMP_KEYS = ("mavenBuildTimestamp", "buildTimestamp")

# Compiled application bootstrap scripts are always precached as CRITICAL.
DEFAULT_CRITICAL_PATTERNS = ("*.cache.js", "*.nocache.js")

# Hashing is I/O bound; more threads than this only adds contention.
MAX_WORKERS = 32


def _resolve_path(base: Path, value: str) -> Path:
    """Resolve a possibly relative path against a base directory."""
    path = Path(value)
    return path if path.is_absolute() else base / path


@dataclass(frozen=True)
class ProjectConfig:
    """Project identification, used to locate the compiled output."""

    directory: str = "."
    artifact_id: str | None = None
    version: str | None = None

    def __post_init__(self) -> None:
        if not self.directory:
            raise ConfigError("Project directory cannot be empty")
        if self.artifact_id is not None and not self.artifact_id:
            raise ConfigError("Project artifact_id cannot be empty")
        if self.version is not None and not self.version:
            raise ConfigError("Project version cannot be empty")

    @property
    def project_id(self) -> str | None:
        """Return "<artifact_id>-<version>", or None if either is unset."""
        if self.artifact_id and self.version:
            return f"{self.artifact_id}-{self.version}"
        return None


@dataclass(frozen=True)
class BuildConfig:
    """Locations of the inputs produced by earlier build phases."""

    properties: str = DEFAULT_PROPERTIES_PATH
    output_root: str | None = None  # overrides the artifact-derived location

    def __post_init__(self) -> None:
        if not self.properties:
            raise ConfigError("Build properties path cannot be empty")
        if self.output_root is not None and not self.output_root:
            raise ConfigError("Build output_root cannot be empty")


@dataclass(frozen=True)
class PwaConfig:
    """Configuration for manifest and service-worker generation.

    Output names (entry_document, service_worker, manifest_file) are relative
    to the output root. Declared assets map root-relative paths to strategies.
    """

    entry_document: str = DEFAULT_ENTRY_DOCUMENT
    service_worker: str = DEFAULT_SERVICE_WORKER
    manifest_file: str | None = DEFAULT_MANIFEST_FILE  # None disables the standalone file
    embed_in_entry: bool = True
    workers: int = DEFAULT_WORKERS
    critical_patterns: tuple[str, ...] = DEFAULT_CRITICAL_PATTERNS
    project_file: str | None = None  # XML file with declared essential assets
    assets: dict[str, CacheStrategy] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.entry_document:
            raise ConfigError("PWA entry_document cannot be empty")
        if not self.service_worker:
            raise ConfigError("PWA service_worker cannot be empty")
        if self.manifest_file is not None and not self.manifest_file:
            raise ConfigError("PWA manifest_file cannot be empty (use null to disable it)")
        outputs = [self.entry_document, self.service_worker]
        if self.manifest_file is not None:
            outputs.append(self.manifest_file)
        if len(set(outputs)) != len(outputs):
            raise ConfigError(f"PWA output files must be distinct, got {outputs}")
        if not (1 <= self.workers <= MAX_WORKERS):
            raise ConfigError(f"PWA workers must be between 1 and {MAX_WORKERS}, got {self.workers}")
        if any(not pattern for pattern in self.critical_patterns):
            raise ConfigError("PWA critical_patterns cannot contain empty patterns")

    @property
    def generated_files(self) -> list[str]:
        """Files written by the generator into the output root."""
        files = [Path(self.service_worker).as_posix()]
        if self.manifest_file is not None:
            files.append(Path(self.manifest_file).as_posix())
        return files


@dataclass(frozen=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    build: BuildConfig = field(default_factory=BuildConfig)
    pwa: PwaConfig = field(default_factory=PwaConfig)

    def __post_init__(self) -> None:
        if self.build.output_root is None and self.project.project_id is None:
            raise ConfigError(
                "Either 'build.output_root' or both 'project.artifact_id' and 'project.version' must be set"
            )

    @property
    def base_dir(self) -> Path:
        """Directory relative paths are resolved against."""
        return Path(self.project.directory)

    @property
    def properties_path(self) -> Path:
        """Path of the build-properties file."""
        return _resolve_path(self.base_dir, self.build.properties)

    @property
    def output_root(self) -> Path:
        """Root of the compiled web application.

        Defaults to target/<artifact>-<version>/<artifact with '-' replaced by '_'>.
        """
        if self.build.output_root is not None:
            return _resolve_path(self.base_dir, self.build.output_root)
        artifact_id = self.project.artifact_id or ""
        return self.base_dir / "target" / str(self.project.project_id) / artifact_id.replace("-", "_")

    @property
    def project_file_path(self) -> Path | None:
        """Path of the XML project file with declared assets, if configured."""
        if self.pwa.project_file is None:
            return None
        return _resolve_path(self.base_dir, self.pwa.project_file)


@dataclass(frozen=True)
class BuildProperties:
    """Values read from the build-properties file."""

    pwa_enabled: bool
    build_timestamp: str | None = None


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None


def _parse_bool(value: object, name: str) -> bool:
    """Parse a YAML flag, accepting quoted true/false strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise ConfigError(f"Invalid '{name}' value: {value!r} (expected true or false)")


def _parse_project_config(data: dict | None) -> ProjectConfig:
    """Parse project configuration section."""
    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ConfigError("'project' section must be a dictionary")

    return ProjectConfig(
        directory=str(data.get("directory", ".")),
        artifact_id=_optional_str(data.get("artifact_id")),
        version=_optional_str(data.get("version")),
    )


def _parse_build_config(data: dict | None) -> BuildConfig:
    """Parse build configuration section."""
    if data is None:
        return BuildConfig()
    if not isinstance(data, dict):
        raise ConfigError("'build' section must be a dictionary")

    return BuildConfig(
        properties=str(data.get("properties", DEFAULT_PROPERTIES_PATH)),
        output_root=_optional_str(data.get("output_root")),
    )


def _parse_critical_patterns(patterns: object) -> tuple[str, ...]:
    """Parse the list of bootstrap file-name patterns."""
    if patterns is None:
        return DEFAULT_CRITICAL_PATTERNS
    if not isinstance(patterns, list):
        raise ConfigError("'pwa.critical_patterns' must be a list")
    return tuple(str(pattern) for pattern in patterns)


def _parse_declared_assets(entries: object) -> dict[str, CacheStrategy]:
    """Parse inline declared assets, degrading to none when malformed."""
    try:
        return parse_declared_entries(entries)
    except DeclarationError as e:
        logger.warning("Ignoring declared assets in 'pwa.assets': %s", e)
        return {}


def _parse_pwa_config(data: dict | None) -> PwaConfig:
    """Parse PWA configuration section."""
    if data is None:
        return PwaConfig()
    if not isinstance(data, dict):
        raise ConfigError("'pwa' section must be a dictionary")

    manifest_file = data.get("manifest_file", DEFAULT_MANIFEST_FILE)

    try:
        workers = int(data.get("workers", DEFAULT_WORKERS))
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid 'pwa.workers' value: {data.get('workers')!r}")

    return PwaConfig(
        entry_document=str(data.get("entry_document", DEFAULT_ENTRY_DOCUMENT)),
        service_worker=str(data.get("service_worker", DEFAULT_SERVICE_WORKER)),
        manifest_file=_optional_str(manifest_file),
        embed_in_entry=_parse_bool(data.get("embed_in_entry", True), "pwa.embed_in_entry"),
        workers=workers,
        critical_patterns=_parse_critical_patterns(data.get("critical_patterns")),
        project_file=_optional_str(data.get("project_file")),
        assets=_parse_declared_assets(data.get("assets")),
    )


def _apply_env_overrides(config_data: dict) -> dict:
    """Apply environment variable overrides to configuration.

    Supported overrides:
    - PWAMANIFEST_PROJECT_DIR: Override project.directory
    - PWAMANIFEST_PROPERTIES: Override build.properties
    - PWAMANIFEST_OUTPUT_ROOT: Override build.output_root
    - PWAMANIFEST_WORKERS: Override pwa.workers
    - PWAMANIFEST_EMBED_IN_ENTRY: Override pwa.embed_in_entry (true/false)
    """
    for section in ("project", "build", "pwa"):
        if config_data.get(section) is None:
            config_data[section] = {}

    project_dir = os.environ.get("PWAMANIFEST_PROJECT_DIR")
    if project_dir is not None:
        config_data["project"]["directory"] = project_dir

    properties = os.environ.get("PWAMANIFEST_PROPERTIES")
    if properties is not None:
        config_data["build"]["properties"] = properties

    output_root = os.environ.get("PWAMANIFEST_OUTPUT_ROOT")
    if output_root is not None:
        config_data["build"]["output_root"] = output_root

    workers = os.environ.get("PWAMANIFEST_WORKERS")
    if workers is not None:
        config_data["pwa"]["workers"] = workers

    embed = os.environ.get("PWAMANIFEST_EMBED_IN_ENTRY")
    if embed is not None:
        config_data["pwa"]["embed_in_entry"] = embed.lower() in ("true", "1", "yes")

    return config_data


def load_config(config_path: str) -> Config:
    """Load and validate configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Validated Config object.

    Raises:
        ConfigError: If the file cannot be read or configuration is invalid.
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML configuration: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read configuration file: {e}")

    if data is None:
        raise ConfigError("Configuration file is empty")

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a YAML dictionary")

    for section in ("project", "build", "pwa"):
        if data.get(section) is not None and not isinstance(data[section], dict):
            raise ConfigError(f"'{section}' section must be a dictionary")

    data = _apply_env_overrides(data)

    return Config(
        project=_parse_project_config(data.get("project")),
        build=_parse_build_config(data.get("build")),
        pwa=_parse_pwa_config(data.get("pwa")),
    )


# Separators and escapes of the Java properties format.
_PROPERTY_WHITESPACE = " \t\f"
_PROPERTY_KEY_END = "=:" + _PROPERTY_WHITESPACE
_PROPERTY_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|.?)", re.DOTALL)
_PROPERTY_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_NATURAL_LINE_END = re.compile(r"\r\n|\r|\n")


def _logical_lines(text: str) -> list[str]:
    """Join continued lines and drop blank and comment lines."""
    lines: list[str] = []
    pending: str | None = None
    for natural in _NATURAL_LINE_END.split(text):
        stripped = natural.lstrip(_PROPERTY_WHITESPACE)
        if pending is None:
            if not stripped or stripped.startswith(("#", "!")):
                continue
            line = stripped
        else:
            line = pending + stripped
        # An odd number of trailing backslashes continues the line
        if (len(line) - len(line.rstrip("\\"))) % 2 == 1:
            pending = line[:-1]
            continue
        pending = None
        lines.append(line)
    if pending is not None:
        lines.append(pending)
    return lines


def _unescape_property(text: str) -> str:
    def replace(match: re.Match) -> str:
        escaped = match.group(1)
        if escaped.startswith("u"):
            if len(escaped) != 5:
                raise ValueError(f"Malformed \\uxxxx encoding in {text!r}")
            return chr(int(escaped[1:], 16))
        return _PROPERTY_ESCAPES.get(escaped, escaped)

    # \u escapes of a surrogate pair make up one character
    return _PROPERTY_ESCAPE.sub(replace, text).encode("utf-16", "surrogatepass").decode("utf-16", "surrogatepass")


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java properties text.

    Follows java.util.Properties: the key ends at the first unescaped '=',
    ':' or whitespace, lines ending in a backslash continue on the next
    line, and backslash escapes (including \\uXXXX) are decoded. Blank lines
    and lines starting with '#' or '!' are ignored. Later keys override
    earlier ones.

    Raises:
        ValueError: If a \\uXXXX escape is malformed.
    """
    properties: dict[str, str] = {}
    for line in _logical_lines(text):
        index = 0
        while index < len(line) and line[index] not in _PROPERTY_KEY_END:
            index += 2 if line[index] == "\\" else 1
        key = line[:index]
        value = line[index:].lstrip(_PROPERTY_WHITESPACE)
        if value[:1] in ("=", ":"):
            value = value[1:].lstrip(_PROPERTY_WHITESPACE)
        properties[_unescape_property(key)] = _unescape_property(value)
    return properties


def load_build_properties(properties_path: Path) -> BuildProperties:
    """Read the PWA flag and build timestamp from a build-properties file.

    The file is read as ISO-8859-1, the encoding Java writes it in; other
    characters arrive as \\uXXXX escapes.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed.
    """
    try:
        text = Path(properties_path).read_text(encoding="iso-8859-1")
    except FileNotFoundError:
        raise ConfigError(f"Build properties not found: {properties_path}")
    except OSError as e:
        raise ConfigError(f"Failed to read build properties {properties_path}: {e}")

    try:
        properties = parse_properties(text)
    except ValueError as e:
        raise ConfigError(f"Invalid build properties {properties_path}: {e}")

    timestamp = next((properties[key] for key in BUILD_TIMESTAMP_KEYS if properties.get(key)), None)
    return BuildProperties(
        pwa_enabled=properties.get("pwa", "false").strip().lower() == "true",
        build_timestamp=timestamp,
    )


def create_build_context(config: Config) -> BuildContext:
    """Create the read-only context for one generator run.

    Raises:
        ConfigError: If build properties are missing, or PWA mode is on
            without a build timestamp.
    """
    properties = load_build_properties(config.properties_path)

    if properties.pwa_enabled and properties.build_timestamp is None:
        keys = " or ".join(f"'{key}'" for key in BUILD_TIMESTAMP_KEYS)
        raise ConfigError(f"PWA mode is on but {keys} is missing from {config.properties_path}")

    output_root = config.output_root
    return BuildContext(
        build_timestamp=properties.build_timestamp or "",
        pwa_enabled=properties.pwa_enabled,
        output_root=output_root,
        entry_document=output_root / config.pwa.entry_document,
        project_id=config.project.project_id,
    )
