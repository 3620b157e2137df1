"""
File records flowing through the pipeline.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath


@dataclass(frozen=True)
class AssetFile:
    """
    A file travelling through pipeline stages.

    Stages never mutate a record; they emit copies with a new path or new
    contents.
    """

    path: Path
    contents: bytes
    cwd: Path = field(default_factory=Path.cwd)

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        object.__setattr__(self, "cwd", Path(self.cwd))

    @classmethod
    def from_path(cls, path: Path, cwd: Path | None = None) -> AssetFile:
        """Read a file from disk into a record."""
        path = Path(path)
        return cls(path=path, contents=path.read_bytes(), cwd=cwd or Path.cwd())

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def absolute_path(self) -> Path:
        return self.path if self.path.is_absolute() else self.cwd / self.path

    def text(self, encoding: str = "utf-8") -> str:
        """Decode contents; undecodable bytes are kept as surrogates."""
        return self.contents.decode(encoding, errors="surrogateescape")

    def with_path(self, path: Path) -> AssetFile:
        return dataclasses.replace(self, path=Path(path))

    def with_text(self, text: str, encoding: str = "utf-8") -> AssetFile:
        return dataclasses.replace(
            self, contents=text.encode(encoding, errors="surrogateescape")
        )

    def relative_to(self, root: Path) -> str:
        """
        POSIX path of this file below ``root``, rooted with ``/``.

        Relative paths are taken against ``cwd``. Files outside ``root``
        keep their full POSIX path.

        Example:
            >>> AssetFile(Path("/p/src/img/a.png"), b"").relative_to(Path("/p/src"))
            '/img/a.png'
        """
        path = self.absolute_path
        root = Path(root)
        if not root.is_absolute():
            root = self.cwd / root
        try:
            relative = path.relative_to(root)
        except ValueError:
            return path.as_posix()
        return str(PurePosixPath("/", *relative.parts))
