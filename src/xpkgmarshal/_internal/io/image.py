"""Container image readers and layer flattening."""

import io
import json
import logging
import tarfile
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Protocol, Set, Union

from pydantic import BaseModel, ConfigDict, Field

from xpkgmarshal._internal.canonical_json import canonical_sha256, sha256_digest
from xpkgmarshal._internal.io.fs import MemoryFileSystem

logger = logging.getLogger(__name__)

WHITEOUT_PREFIX = ".wh."
OPAQUE_WHITEOUT = ".wh..wh..opq"

MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"
MEDIA_TYPE_DOCKER_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"


class Image(Protocol):
    """A decoded container image."""

    def digest(self) -> str:
        """Content digest of the image ("sha256:<hex>")."""
        ...

    def layers(self) -> Iterable[bytes]:
        """Layer tarballs, base layer first. Gzip compression is allowed."""
        ...


class LayerImage:
    """An image held in memory as a list of layer tarballs.

    Without an explicit digest, the digest is computed over a canonical
    manifest listing the layer digests, so identical layers give identical
    digests.
    """

    def __init__(self, layers: List[bytes], digest: Optional[str] = None):
        self._layers = list(layers)
        self._digest = digest

    def digest(self) -> str:
        if self._digest is not None:
            return self._digest
        manifest = {
            "schemaVersion": 2,
            "layers": [{"digest": sha256_digest(layer), "size": len(layer)} for layer in self._layers],
        }
        return canonical_sha256(manifest)

    def layers(self) -> Iterable[bytes]:
        return list(self._layers)


class Descriptor(BaseModel):
    mediaType: Optional[str] = None
    digest: str
    size: Optional[int] = None

    model_config = ConfigDict(extra="ignore")


class ImageIndex(BaseModel):
    schemaVersion: int = 2
    manifests: List[Descriptor] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class ImageManifest(BaseModel):
    schemaVersion: int = 2
    mediaType: Optional[str] = None
    config: Optional[Descriptor] = None
    layers: List[Descriptor] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class OCILayoutImage:
    """An image read from an OCI image layout directory.

    The layout's index.json must reference exactly one image, either directly
    or through a nested image index (the first entry is used).
    """

    def __init__(self, layout_dir: Union[str, Path]):
        self.layout_dir = Path(layout_dir)
        self._descriptor: Optional[Descriptor] = None
        self._manifest: Optional[ImageManifest] = None

    def _blob(self, digest: str) -> bytes:
        algo, _, hex_digest = digest.partition(":")
        blob_path = self.layout_dir / "blobs" / algo / hex_digest
        if not blob_path.exists():
            raise FileNotFoundError(f"Missing blob {digest} in {self.layout_dir}")
        return blob_path.read_bytes()

    def _resolve(self) -> None:
        if self._manifest is not None:
            return
        index_path = self.layout_dir / "index.json"
        if not index_path.exists():
            raise FileNotFoundError(f"Missing index.json in {self.layout_dir}")
        index = ImageIndex(**json.loads(index_path.read_text(encoding="utf-8")))
        if len(index.manifests) != 1:
            raise ValueError(
                f"OCI layout must reference exactly one image, found {len(index.manifests)}"
            )
        descriptor = index.manifests[0]
        data = json.loads(self._blob(descriptor.digest))
        while descriptor.mediaType in (MEDIA_TYPE_OCI_INDEX, MEDIA_TYPE_DOCKER_LIST) or "manifests" in data:
            nested = ImageIndex(**data)
            if not nested.manifests:
                raise ValueError(f"Image index {descriptor.digest} has no manifests")
            descriptor = nested.manifests[0]
            data = json.loads(self._blob(descriptor.digest))
        self._descriptor = descriptor
        self._manifest = ImageManifest(**data)

    def digest(self) -> str:
        self._resolve()
        return self._descriptor.digest

    def layers(self) -> Iterable[bytes]:
        self._resolve()
        return [self._blob(layer.digest) for layer in self._manifest.layers]


def _member_path(name: str) -> str:
    path = str(PurePosixPath(name.lstrip("/")))
    if path.startswith("./"):
        path = path[2:]
    return "" if path == "." else path


def _is_hidden(path: str, hidden: Set[str], opaque: Set[str]) -> bool:
    parts = PurePosixPath(path).parts
    for i in range(1, len(parts) + 1):
        prefix = "/".join(parts[:i])
        if prefix in hidden:
            return True
        if i < len(parts) and prefix in opaque:
            return True
    return "" in opaque


def flatten(image: Image) -> MemoryFileSystem:
    """Flatten image layers into a single in-memory filesystem.

    Layers are applied top-down: the first occurrence of a path in the upper
    layers wins. A ".wh.<name>" entry hides <name> in lower layers and a
    ".wh..wh..opq" entry hides everything below its directory in lower layers.
    Only regular files are kept.
    """
    fs = MemoryFileSystem()
    seen: Set[str] = set()
    hidden: Set[str] = set()
    opaque: Set[str] = set()

    layers = list(image.layers())
    for layer in reversed(layers):
        layer_hidden: Set[str] = set()
        layer_opaque: Set[str] = set()
        with tarfile.open(fileobj=io.BytesIO(layer), mode="r:*") as tar:
            for member in tar:
                path = _member_path(member.name)
                if not path:
                    continue
                posix = PurePosixPath(path)
                parent = "" if str(posix.parent) == "." else str(posix.parent)
                if posix.name == OPAQUE_WHITEOUT:
                    layer_opaque.add(parent)
                    continue
                if posix.name.startswith(WHITEOUT_PREFIX):
                    target = posix.name[len(WHITEOUT_PREFIX):]
                    layer_hidden.add(f"{parent}/{target}" if parent else target)
                    continue
                if not member.isfile() or path in seen or _is_hidden(path, hidden, opaque):
                    continue
                extracted = tar.extractfile(member)
                fs.write(path, extracted.read() if extracted is not None else b"")
                seen.add(path)
        hidden |= layer_hidden
        opaque |= layer_opaque

    logger.debug("Flattened %d layer(s) into %d file(s)", len(layers), len(seen))
    return fs
