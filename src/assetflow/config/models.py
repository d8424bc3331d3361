"""
Pydantic models for validating and hashing assetflow configuration files.
"""

from __future__ import annotations

import hashlib
import json
import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILENAME = "assetflow.toml"

DEFAULT_IMAGE_EXTENSIONS = ["png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "bmp"]


class _Section(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
    }


class ServerConfig(_Section):
    """
    Development server settings.

    Attributes:
        host: Interface the HTTP listener binds to.
        port: HTTP port for the static server.
        index: Default document served for directory requests.
        open_browser: Open the site in a browser once the server is up.
        live_port: Optional separate port for the live-reload socket.
    """
    host: str = "127.0.0.1"
    port: int = Field(default=3000, ge=1, le=65535)
    index: str = "index.html"
    open_browser: bool = True
    live_port: Optional[int] = Field(default=None, ge=1, le=65535)


class MarkupConfig(_Section):
    """
    HTML include settings.

    Attributes:
        include_prefix: Marker that starts an include directive or variable token.
        partials_dir: Directory name (at any depth) holding include-only fragments.
        max_depth: Maximum include nesting before a file is rejected.
    """
    include_prefix: str = "%%"
    partials_dir: str = "partials"
    max_depth: int = Field(default=32, ge=1)

    @field_validator("include_prefix")
    @classmethod
    def _prefix_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("include_prefix must not be blank")
        return value


class StyleConfig(_Section):
    """
    Style-sheet settings.

    Attributes:
        prefix: Apply vendor prefixes to the expanded CSS.
        minify: Emit the `.min.css` variant.
        precision: Decimal precision handed to the style compiler.
    """
    prefix: bool = True
    minify: bool = True
    precision: int = Field(default=5, ge=1, le=10)


class ScriptConfig(_Section):
    """
    Script settings.

    Attributes:
        transpile: Run the transpiler before minifying.
        preset: Transpiler preset for the baseline environment.
        bundle: Files concatenated into the bundle, in execution order.
        bundle_name: Base name of the bundle artifacts.
        bundle_separator: Text placed between bundled files.
    """
    transpile: bool = True
    preset: str = "es2015"
    bundle: List[str] = Field(default_factory=lambda: ["layout.js", "main.js"])
    bundle_name: str = "combined"
    bundle_separator: str = "\n"

    @field_validator("bundle")
    @classmethod
    def _bundle_unique(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("bundle must list at least one file")
        if len(set(value)) != len(value):
            raise ValueError("bundle entries must be unique")
        return value


class ImageConfig(_Section):
    """
    Image copy settings.

    Attributes:
        extensions: File extensions treated as images (case-insensitive).
        change_detection: "mtime" copies when the source is newer;
            "hash" copies when the content differs.
    """
    extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_IMAGE_EXTENSIONS))
    change_detection: Literal["mtime", "hash"] = "mtime"

    @field_validator("extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = sorted({ext.lower().lstrip(".") for ext in value if ext.strip()})
        if not normalized:
            raise ValueError("extensions must not be empty")
        return normalized


class WatchConfig(_Section):
    """
    Watch loop settings.

    Attributes:
        debounce_ms: Quiet period after the last event before a rebuild starts.
        ignore_patterns: Filename globs ignored by the watchers.
    """
    debounce_ms: int = Field(default=200, ge=0)
    ignore_patterns: List[str] = Field(default_factory=lambda: [".*", "*~", "*.swp", "*.tmp"])


class VendorEntry(_Section):
    """
    A vendor package copied verbatim (no "dist" flattening).

    Attributes:
        package: Directory name under node_modules.
        source: Sub-directory of the package to copy ("" for the whole package).
        destination: Folder name under the build plugins directory.
    """
    package: str
    source: str = ""
    destination: Optional[str] = None

    @property
    def target_name(self) -> str:
        return self.destination or self.package


def _default_vendor_entries() -> List[VendorEntry]:
    return [
        VendorEntry(package="bootstrap", source="dist", destination="bootstrap"),
        VendorEntry(package="bootstrap-icons", destination="bootstrap-icons"),
        VendorEntry(package="simplebar", source="dist", destination="simplebar"),
    ]


class VendorConfig(_Section):
    """
    Third-party package settings.

    Attributes:
        node_modules: Directory holding installed packages.
        package_json: Manifest whose dependencies are copied generically.
        entries: Packages copied verbatim before the generic pass.
        exclude: Package names skipped by the generic pass.
    """
    node_modules: Path = Path("node_modules")
    package_json: Path = Path("package.json")
    entries: List[VendorEntry] = Field(default_factory=_default_vendor_entries)
    exclude: List[str] = Field(default_factory=list)


class ProjectConfig(_Section):
    """
    Top-level configuration for assetflow.

    Attributes:
        source_root: Directory holding the html/scss/js/images subtrees.
        build_root: Output directory served by the dev server.
        server: Development server settings.
        markup: Include resolver settings.
        styles: Style-sheet settings.
        scripts: Script settings.
        images: Image copy settings.
        watch: Watch loop settings.
        vendor: Third-party package settings.
        workers: Thread pool size for parallel task groups.
    """
    source_root: Path = Path("src")
    build_root: Path = Path("build")
    server: ServerConfig = Field(default_factory=ServerConfig)
    markup: MarkupConfig = Field(default_factory=MarkupConfig)
    styles: StyleConfig = Field(default_factory=StyleConfig)
    scripts: ScriptConfig = Field(default_factory=ScriptConfig)
    images: ImageConfig = Field(default_factory=ImageConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    vendor: VendorConfig = Field(default_factory=VendorConfig)
    workers: int = Field(default=8, ge=1)

    @model_validator(mode="after")
    def _roots_differ(self) -> "ProjectConfig":
        if Path(self.source_root) == Path(self.build_root):
            raise ValueError("source_root and build_root must be different directories")
        return self

    @property
    def hash(self) -> str:
        """
        Deterministic hash of the normalized config, used to detect changes.
        """
        payload = self.model_dump(mode="json", round_trip=True)
        blob = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        return hashlib.sha256(blob).hexdigest()

    def resolved(self, base_dir: Path | str) -> "ProjectConfig":
        """
        Return a copy whose relative paths are anchored at base_dir.
        """
        base = Path(base_dir).expanduser().resolve()

        def _anchor(value: Path) -> Path:
            value = Path(value).expanduser()
            return value if value.is_absolute() else (base / value).resolve()

        vendor = self.vendor.model_copy(
            update={
                "node_modules": _anchor(self.vendor.node_modules),
                "package_json": _anchor(self.vendor.package_json),
            }
        )
        return self.model_copy(
            update={
                "source_root": _anchor(self.source_root),
                "build_root": _anchor(self.build_root),
                "vendor": vendor,
            }
        )


def load_config(path: Optional[Path | str] = None, *, base_dir: Optional[Path | str] = None) -> ProjectConfig:
    """
    Load and validate a TOML config file into a ProjectConfig instance.

    When path is None the default file in base_dir (or the working directory)
    is used if present; otherwise defaults apply.

    Args:
        path: Path to the TOML configuration file.
        base_dir: Directory used to find the default file and anchor paths.

    Returns:
        A validated ProjectConfig with absolute paths.

    Raises:
        ConfigError: If the file is missing, unreadable, or invalid.
    """
    base = Path(base_dir or Path.cwd()).expanduser().resolve()
    if path is None:
        candidate = base / DEFAULT_CONFIG_FILENAME
        if not candidate.exists():
            logger.debug("No %s in %s; using defaults", DEFAULT_CONFIG_FILENAME, base)
            return ProjectConfig().resolved(base)
        config_path = candidate
    else:
        config_path = Path(path).expanduser().resolve()
        if not config_path.exists():
            raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open("rb") as handle:
            raw_data: Dict[str, Any] = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration file: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in configuration file: {exc}") from exc

    raw_data = _normalize_toml_schema(raw_data)

    try:
        config = ProjectConfig.model_validate(raw_data)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc

    return config.resolved(config_path.parent)


def _normalize_toml_schema(data: Any) -> Dict[str, Any]:
    """
    Normalize TOML-specific schema conveniences to the internal config model.

    Accepts [[vendor.package]] table arrays as an alias for vendor.entries.
    """
    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a TOML table/object.")

    normalized = dict(data)
    vendor = normalized.get("vendor")
    if isinstance(vendor, dict) and "package" in vendor:
        if "entries" in vendor:
            raise ConfigError("Use either [[vendor.package]] or vendor.entries, not both.")
        vendor = dict(vendor)
        vendor["entries"] = _coerce_table_array(vendor.pop("package"), "vendor.package")
        normalized["vendor"] = vendor
    return normalized


def _coerce_table_array(value: Any, label: str) -> list[dict]:
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    if isinstance(value, list):
        if not all(isinstance(item, dict) for item in value):
            raise ConfigError(f"Each [[{label}]] entry must be a table/object.")
        return value
    raise ConfigError(f"Invalid [{label}] block; expected a table or array of tables.")
