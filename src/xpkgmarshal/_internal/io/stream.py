"""Stream acquisition: locate and open the package manifest stream.

Two inputs are supported:
- a container image, whose flattened filesystem carries the manifest stream
  at a fixed path;
- a directory named "<dir>@<version>", whose files are concatenated into one
  YAML stream. A file whose base name starts with the digest prefix marks the
  package digest by its name and is left out of the stream.
"""

import io
import logging
import tarfile
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import BinaryIO, List, Tuple

from xpkgmarshal.codes import MarshalCode, MarshalError
from xpkgmarshal._internal.io.fs import FileSystem
from xpkgmarshal._internal.io.image import Image, flatten

logger = logging.getLogger(__name__)

STREAM_FILE = "package.yaml"
DIGEST_PREFIX = "sha256:"
DOCUMENT_SEPARATOR = b"\n---\n"

ERR_OPEN_PACKAGE_STREAM = "failed to open package stream file"


@dataclass
class DirectoryStream:
    """Manifest stream read from a directory, plus the digest found by file name."""
    stream: BinaryIO
    digest: str  # "" when no digest marker file exists
    files: List[str]  # Files concatenated into the stream, in order


def image_digest(image: Image) -> str:
    """Return the content digest of an image."""
    try:
        return image.digest()
    except Exception as e:
        raise MarshalError(
            MarshalCode.DIGEST_UNAVAILABLE,
            f"failed to pull digest from image: {e}"
        ) from e


def open_image_stream(image: Image, stream_file: str = STREAM_FILE) -> BinaryIO:
    """Open the manifest stream file inside a flattened image."""
    try:
        fs = flatten(image)
    except (OSError, ValueError, tarfile.TarError) as e:
        raise MarshalError(MarshalCode.NOT_FOUND, f"{ERR_OPEN_PACKAGE_STREAM}: {e}") from e
    try:
        stream = fs.open(stream_file)
    except FileNotFoundError as e:
        raise MarshalError(
            MarshalCode.NOT_FOUND,
            f"{ERR_OPEN_PACKAGE_STREAM}: {stream_file} not present in image"
        ) from e
    logger.debug("Opened %s from image", stream_file)
    return stream


def split_versioned_path(path: str) -> Tuple[str, str]:
    """Split "<dir>@<version>" into its two parts.

    Raises:
        MarshalError: INVALID_INPUT_PATH unless the path has exactly one "@"
    """
    parts = path.split("@")
    if len(parts) != 2:
        raise MarshalError(
            MarshalCode.INVALID_INPUT_PATH,
            f"invalid path provided for package lookup: {path!r}"
        )
    return parts[0], parts[1]


def open_directory_stream(
    fs: FileSystem,
    path: str,
    digest_prefix: str = DIGEST_PREFIX,
) -> DirectoryStream:
    """Concatenate the files under a package directory into one YAML stream.

    Directories are descended into but contribute no content. Digest marker
    files are excluded; the last one in walk order provides the digest.
    """
    if not fs.exists(path) or not fs.is_dir(path):
        raise MarshalError(
            MarshalCode.NOT_FOUND,
            f"{ERR_OPEN_PACKAGE_STREAM}: directory {path!r} does not exist"
        )

    digest = ""
    markers: List[str] = []
    files: List[str] = []
    for entry, is_dir in fs.walk(path):
        if is_dir:
            continue
        base = PurePosixPath(entry).name
        if base.startswith(digest_prefix):
            markers.append(base)
            digest = base
            continue
        files.append(entry)

    if len(markers) > 1:
        logger.warning(
            "Found %d digest marker files in %s, using %s", len(markers), path, digest
        )

    chunks: List[bytes] = []
    for entry in files:
        with fs.open(entry) as f:
            chunks.append(f.read())
    logger.debug("Read %d file(s) from %s (digest=%r)", len(files), path, digest)
    return DirectoryStream(
        stream=io.BytesIO(DOCUMENT_SEPARATOR.join(chunks)),
        digest=digest,
        files=files,
    )
