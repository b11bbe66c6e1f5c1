"""Marshal package artifacts into ParsedPackage descriptors.

A marshal call runs its stages in order and stops at the first failure:
acquire the manifest stream, decode it, classify and lint, then extract
dependencies and build the schema index while assembling the package.
A Marshaler keeps no state between calls.
"""

import logging
from typing import BinaryIO, Optional

from xpkgmarshal.codes import MarshalCode, MarshalError
from xpkgmarshal._internal.io.fs import FileSystem
from xpkgmarshal._internal.io.image import Image
from xpkgmarshal._internal.io.stream import (
    image_digest,
    open_directory_stream,
    open_image_stream,
    split_versioned_path,
)
from .config import MarshalerConfig
from .lint import classify_and_lint
from .package import ParsedPackage, finalize
from .parser import GenericPackage, PackageParseError, PackageParser

ERR_PARSE_PACKAGE = "failed to parse package yaml"


class Marshaler:
    """Turns images and package directories into ParsedPackage values.

    Args:
        parser: Manifest stream decoder (defaults to PackageParser)
        config: Format constants and policies (defaults to MarshalerConfig())
        logger: Destination for diagnostic records (defaults to this module's logger)
    """

    def __init__(
        self,
        parser: Optional[PackageParser] = None,
        config: Optional[MarshalerConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.parser = parser or PackageParser()
        self.config = config or MarshalerConfig()
        self.logger = logger or logging.getLogger(__name__)

    def from_image(self, registry: str, repo: str, version: str, image: Image) -> ParsedPackage:
        """Marshal a package image pulled from registry/repo at version."""
        digest = image_digest(image)
        stream = open_image_stream(image, self.config.stream_file)
        self.logger.debug("Marshaling image %s/%s:%s (%s)", registry, repo, version, digest)
        return self._marshal(registry, repo, version, digest, stream)

    def from_dir(self, fs: FileSystem, path: str, registry: str, repo: str) -> ParsedPackage:
        """Marshal a package directory named "<dir>@<version>"."""
        _, version = split_versioned_path(path)
        acquired = open_directory_stream(fs, path, self.config.digest_prefix)
        self.logger.debug("Marshaling directory %s (%d file(s))", path, len(acquired.files))
        return self._marshal(registry, repo, version, acquired.digest, acquired.stream)

    def parse(self, stream: BinaryIO) -> GenericPackage:
        """Decode a manifest stream, wrapping decoder failures."""
        try:
            return self.parser.parse(stream)
        except PackageParseError as e:
            raise MarshalError(MarshalCode.PARSE_FAILURE, f"{ERR_PARSE_PACKAGE}: {e}") from e

    def _marshal(self, registry: str, repo: str, version: str, digest: str, stream: BinaryIO) -> ParsedPackage:
        pkg = self.parse(stream)
        meta, pkg_type = classify_and_lint(pkg, self.logger)
        parsed = finalize(
            registry,
            repo,
            version,
            digest,
            meta,
            tuple(pkg.objects),
            pkg_type,
            duplicate_schemas=self.config.duplicate_schemas,
            default_registry=self.config.default_registry,
        )
        self.logger.debug(
            "Marshaled %s %s@%s: %d dependency(ies), %d schema(s)",
            parsed.package_type.value,
            parsed.name,
            parsed.version,
            len(parsed.dependencies),
            len(parsed.schema_index),
        )
        return parsed
