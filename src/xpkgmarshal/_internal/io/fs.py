"""Virtual filesystem used by the stream acquirer.

Directory packages are read through this small interface so the same walk
works for a real directory tree and for a flattened image held in memory.
Paths are always POSIX-style strings.
"""

from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Iterator, Protocol, Tuple, Union
import io


class FileSystem(Protocol):
    """Directory listing and file-open by path."""

    def exists(self, path: str) -> bool: ...

    def is_dir(self, path: str) -> bool: ...

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        """Yield (path, is_dir) for every entry below root, sorted by path."""
        ...

    def open(self, path: str) -> BinaryIO: ...


def _normalize(path: str) -> str:
    """Normalize a path to forward-slash form without a trailing slash."""
    normalized = str(PurePosixPath(path.replace("\\", "/")))
    return "" if normalized == "." else normalized


class OsFileSystem:
    """FileSystem backed by the local disk, optionally rooted at a base directory."""

    def __init__(self, base: Union[str, Path, None] = None):
        self.base = Path(base) if base is not None else None

    def _resolve(self, path: str) -> Path:
        p = Path(path)
        if self.base is None or p.is_absolute():
            return p
        return self.base / p

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def is_dir(self, path: str) -> bool:
        return self._resolve(path).is_dir()

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        root_path = self._resolve(root)
        prefix = _normalize(root)
        for entry in sorted(root_path.rglob("*")):
            rel = entry.relative_to(root_path).as_posix()
            yield (f"{prefix}/{rel}" if prefix else rel), entry.is_dir()

    def open(self, path: str) -> BinaryIO:
        return open(self._resolve(path), "rb")


class MemoryFileSystem:
    """FileSystem over an in-memory mapping of file path -> content.

    Directories are implied by the file paths.
    """

    def __init__(self, files: Union[Dict[str, bytes], None] = None):
        self._files: Dict[str, bytes] = {}
        for path, data in (files or {}).items():
            self.write(path, data)

    def write(self, path: str, data: bytes) -> None:
        self._files[_normalize(path).lstrip("/")] = data

    def _dirs(self) -> set:
        dirs = set()
        for name in self._files:
            parent = PurePosixPath(name).parent
            while str(parent) != ".":
                dirs.add(str(parent))
                parent = parent.parent
        return dirs

    def exists(self, path: str) -> bool:
        target = _normalize(path).lstrip("/")
        return target == "" or target in self._files or target in self._dirs()

    def is_dir(self, path: str) -> bool:
        target = _normalize(path).lstrip("/")
        return target == "" or target in self._dirs()

    def walk(self, root: str) -> Iterator[Tuple[str, bool]]:
        prefix = _normalize(root).lstrip("/")
        entries = [(name, False) for name in self._files] + [(d, True) for d in self._dirs()]
        for name, is_dir in sorted(entries):
            if prefix == "" or name.startswith(prefix + "/"):
                yield name, is_dir

    def open(self, path: str) -> BinaryIO:
        target = _normalize(path).lstrip("/")
        if target not in self._files:
            raise FileNotFoundError(f"No such file in memory filesystem: {path}")
        return io.BytesIO(self._files[target])
