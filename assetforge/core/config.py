"""
Build configuration.

Options may come from Python (snake_case) or from YAML files using the
camelCase names (``assetPath``, ``globalVar``). Later sources override
earlier ones.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

StageName = Literal["rev", "replace"]


class BranchSpec(BaseModel):
    """A named set of source files and the ordered stages they flow through."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(description="Branch name used in reports")
    patterns: list[str] = Field(description="Glob patterns relative to the source root")
    stages: list[StageName] = Field(
        default_factory=lambda: ["rev"], description="Stages applied in order"
    )


class AssetConfig(BaseModel):
    """Process-wide options shared by the rev and replace stages."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    prefix: str | list[str] = Field(
        default="", description="URL prefix, or prefixes rotated by assignment index"
    )
    src: str = Field(default="src", description="Source root, relative to cwd")
    dest: str = Field(default="dist", description="Destination root, relative to cwd")
    asset_path: str = Field(
        default="/assets/", alias="assetPath", description="Base path replacing asset://"
    )
    manifest: str = Field(default="manifest.js", description="Manifest file name template")
    global_var: str = Field(
        default="window.assetManifest",
        alias="globalVar",
        description="Global binding the manifest map is assigned to",
    )
    interval: int = Field(default=100, ge=0, description="Milliseconds between retries")
    repeat: int = Field(default=10, ge=0, description="Maximum retry count")
    cleanup: bool = Field(default=True, description="Delete superseded output files")
    hash: bool = Field(default=True, description="Fingerprint file names")
    debounce: int = Field(
        default=100, ge=0, description="Quiet period in ms before the manifest is written"
    )
    branches: list[BranchSpec] = Field(
        default_factory=list, description="File branches used by the CLI build"
    )

    @field_validator("manifest")
    @classmethod
    def _manifest_is_basename(cls, value: str) -> str:
        if not value or "/" in value or "\\" in value:
            raise ValueError(f"manifest must be a bare file name, got {value!r}")
        return value

    @property
    def prefix_pool(self) -> list[str]:
        """Prefixes in rotation order; a single empty prefix means none."""
        if isinstance(self.prefix, str):
            return [self.prefix]
        return list(self.prefix) or [""]

    @property
    def interval_seconds(self) -> float:
        return self.interval / 1000.0

    @property
    def debounce_seconds(self) -> float:
        return self.debounce / 1000.0

    @property
    def manifest_logical_path(self) -> str:
        """Path under which text files may reference the manifest itself."""
        return self.asset_path + self.manifest

    def src_root(self, cwd: Path) -> Path:
        return Path(cwd) / self.src

    def dest_root(self, cwd: Path) -> Path:
        return Path(cwd) / self.dest

    def with_overrides(self, **overrides: Any) -> AssetConfig:
        """
        Return a copy with the given options replaced.

        ``None`` values are ignored so optional keyword arguments can be
        passed straight through.
        """
        return AssetConfig.merge(self, {k: v for k, v in overrides.items() if v is not None})

    @classmethod
    def merge(cls, *sources: AssetConfig | Mapping[str, Any] | None) -> AssetConfig:
        """
        Layer configuration sources, later values overriding earlier ones.

        Args:
            *sources: Configs or mappings. Only explicitly set options of a
                config take part, so defaults never mask earlier values.

        Returns:
            Merged configuration.
        """
        data: dict[str, Any] = {}
        for source in sources:
            if source is None:
                continue
            if isinstance(source, AssetConfig):
                data.update(source.model_dump(exclude_unset=True))
            else:
                data.update(_normalize_keys(source))
        return cls.model_validate(data)


def _normalize_keys(source: Mapping[str, Any]) -> dict[str, Any]:
    """Map camelCase aliases to field names."""
    aliases = {
        field.alias: name
        for name, field in AssetConfig.model_fields.items()
        if field.alias
    }
    return {aliases.get(key, key): value for key, value in source.items()}


def load_config(path: Path, base: AssetConfig | None = None) -> AssetConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: YAML file path.
        base: Optional configuration the file is layered over.

    Returns:
        Merged configuration.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the file is not a mapping or has invalid options.
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level, got {type(data).__name__}")

    try:
        return AssetConfig.merge(base, data)
    except ValidationError as e:
        raise ValueError(f"{path}: invalid configuration\n{e}") from e
