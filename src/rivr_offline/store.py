"""On-disk blob store for cached binary payloads.

Map tiles and other cached files live as plain files under a single base
directory, organized by subdirectory::

  - map_tiles/: Mapbox raster tiles, one ``{tile_key}.tile`` file each
  - files/: arbitrary cached files written through ``CacheService.cache_file``

The SQLite cache database holds the metadata (expiry, last access, size);
this module only moves bytes and refuses any path that would escape the base
directory.
"""

from __future__ import annotations

import shutil
from pathlib import Path

TILES_DIR = "map_tiles"
FILES_DIR = "files"


class BlobStore:
    """Reads and writes cached binary files under ``base_dir``."""

    def __init__(self, base_dir: Path) -> None:
        self.base = base_dir
        self.tiles = base_dir / TILES_DIR
        self.files = base_dir / FILES_DIR

    def write(self, path: Path, data: bytes) -> Path:
        """Write ``data`` to ``path`` (relative to the base), creating parents.

        Returns:
            Absolute path of the written file.
        """
        full = self._resolve(path)
        full.parent.mkdir(parents=True, exist_ok=True)
        full.write_bytes(data)
        return full

    def read(self, path: Path) -> bytes | None:
        """Return the file's bytes, or None if it doesn't exist."""
        full = self._resolve(path)
        if not full.is_file():
            return None
        return full.read_bytes()

    def exists(self, path: Path) -> bool:
        return self._resolve(path).is_file()

    def delete(self, path: Path) -> int:
        """Delete a file. Returns the number of bytes freed (0 if missing)."""
        full = self._resolve(path)
        if not full.is_file():
            return 0
        size = full.stat().st_size
        full.unlink()
        return size

    def size_of(self, path: Path) -> int:
        full = self._resolve(path)
        return full.stat().st_size if full.is_file() else 0

    def total_size(self) -> int:
        """Total bytes of every file under the base directory."""
        if not self.base.exists():
            return 0
        return sum(p.stat().st_size for p in self.base.rglob("*") if p.is_file())

    def clear(self, subdir: str | None = None) -> None:
        """Remove all files (or just one subdirectory) and recreate the directory."""
        target = self._resolve(Path(subdir)) if subdir else self.base
        if target.exists():
            shutil.rmtree(target)
        target.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: Path) -> Path:
        full = self.base / path if not path.is_absolute() else path
        try:
            full.resolve().relative_to(self.base.resolve())
        except ValueError:
            msg = f"Path escapes blob store base directory: {path}"
            raise ValueError(msg) from None
        return full
