"""Decode a package manifest stream into meta and body objects."""

import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, List, Type, Union

import yaml
from pydantic import ValidationError

from .objects import (
    BODY_MODELS,
    META_GROUP,
    META_MODELS,
    TypedObject,
    UnknownObject,
    split_api_version,
)

logger = logging.getLogger(__name__)

TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"


class ManifestLoader(yaml.SafeLoader):
    """SafeLoader that leaves unquoted dates and timestamps as strings.

    Kubernetes decodes manifests as JSON-compatible YAML, where `2021-01-01`
    is a string. YAML 1.1 would otherwise turn it into a datetime.date.
    """


ManifestLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag != TIMESTAMP_TAG]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def load_documents(data: Union[bytes, str]) -> List[Any]:
    """Load every document of a YAML stream with ManifestLoader."""
    return list(yaml.load_all(data, Loader=ManifestLoader))


class PackageParseError(ValueError):
    """Raised when a manifest stream cannot be decoded into a package."""
    pass


@dataclass
class GenericPackage:
    """Decoded package before classification."""
    meta: List[TypedObject] = field(default_factory=list)
    objects: List[TypedObject] = field(default_factory=list)


def _decode_object(index: int, doc: Dict[str, Any]) -> TypedObject:
    api_version = doc.get("apiVersion")
    kind = doc.get("kind")
    if not isinstance(api_version, str) or not api_version:
        raise PackageParseError(f"document {index}: missing apiVersion")
    if not isinstance(kind, str) or not kind:
        raise PackageParseError(f"document {index}: missing kind")

    group, _ = split_api_version(api_version)
    registry = META_MODELS if group == META_GROUP else BODY_MODELS
    model: Type[TypedObject] = registry.get((api_version, kind), UnknownObject)
    try:
        return model.model_validate(doc)
    except ValidationError as e:
        raise PackageParseError(
            f"document {index} ({api_version}, Kind={kind}): {e}"
        ) from e


class PackageParser:
    """Multi-document YAML decoder for package manifest streams.

    Every non-empty document must be a mapping with apiVersion and kind.
    Documents in the package meta group are meta objects; all others are
    body objects, in stream order.
    """

    def parse(self, stream: Union[BinaryIO, bytes, str]) -> GenericPackage:
        if isinstance(stream, (bytes, str)):
            data = stream
        else:
            try:
                data = stream.read()
            finally:
                stream.close()
        if isinstance(data, bytes):
            try:
                data = data.decode("utf-8")
            except UnicodeDecodeError as e:
                raise PackageParseError(f"stream is not valid UTF-8: {e}") from e

        try:
            docs = load_documents(data)
        except yaml.YAMLError as e:
            raise PackageParseError(f"invalid YAML: {e}") from e

        pkg = GenericPackage()
        for index, doc in enumerate(docs):
            if doc is None:
                continue
            if not isinstance(doc, dict):
                raise PackageParseError(
                    f"document {index}: expected a mapping, got {type(doc).__name__}"
                )
            obj = _decode_object(index, doc)
            if obj.group == META_GROUP:
                pkg.meta.append(obj)
            else:
                pkg.objects.append(obj)

        logger.debug(
            "Decoded %d meta object(s) and %d body object(s)", len(pkg.meta), len(pkg.objects)
        )
        return pkg
