"""Schema dialect conversion for resource definitions.

Resource definition schemas are Kubernetes structural schemas (OpenAPI v3
schema objects with x-kubernetes-* extensions). Before they can be compiled
they are converted into plain JSON Schema documents:

- legacy v1beta1 CRDs are first brought into the canonical form, where the
  deprecated single `spec.version` is expanded into `spec.versions`;
- `nullable: true` widens `type` (and `enum`) with null;
- `x-kubernetes-int-or-string: true` becomes `type: [integer, string]`;
- other `x-kubernetes-*` extensions and documentation keys are dropped;
- formats outside the supported set are stripped.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .objects import CustomResourceDefinitionV1Beta1

# Formats kept when converting, compared with "-" removed. "duration" is
# stripped: Kubernetes durations ("5m") are not ISO 8601, which is what
# jsonschema checks when isoduration is installed.
SUPPORTED_FORMATS = frozenset({
    "bsonobjectid", "uri", "email", "hostname", "ipv4", "ipv6", "cidr", "mac",
    "uuid", "uuid3", "uuid4", "uuid5", "isbn", "isbn10", "isbn13", "creditcard",
    "ssn", "hexcolor", "rgbcolor", "byte", "password", "date", "datetime",
})

DROPPED_KEYS = frozenset({"example", "externalDocs", "$schema"})

# Keywords whose value is a single sub-schema
_SCHEMA_KEYWORDS = ("not",)
# Keywords whose value is a list of sub-schemas
_SCHEMA_LIST_KEYWORDS = ("allOf", "anyOf", "oneOf")
# Keywords whose value maps names to sub-schemas
_SCHEMA_MAP_KEYWORDS = ("properties", "patternProperties", "definitions")
# Keywords whose value is a sub-schema or a boolean
_SCHEMA_OR_BOOL_KEYWORDS = ("additionalProperties", "additionalItems")


class SchemaConversionError(ValueError):
    """Raised when a schema cannot be converted."""
    pass


@dataclass
class CanonicalVersion:
    name: str
    served: bool = True
    storage: bool = False
    schema: Optional[Dict[str, Any]] = None


@dataclass
class CanonicalCRD:
    """Version-independent form of a CustomResourceDefinition."""
    group: str
    kind: str
    versions: List[CanonicalVersion] = field(default_factory=list)
    validation: Optional[Dict[str, Any]] = None  # Top-level schema for all versions


def canonicalize_v1beta1_crd(crd: CustomResourceDefinitionV1Beta1) -> CanonicalCRD:
    """Convert a legacy CRD into the canonical form.

    A CRD that only sets the deprecated `spec.version` gets a single served
    storage version of that name.
    """
    spec = crd.spec
    versions = [
        CanonicalVersion(
            name=v.name,
            served=v.served,
            storage=v.storage,
            schema=_copy_schema(v.schema_.openAPIV3Schema if v.schema_ else None, f"versions[{v.name}]"),
        )
        for v in spec.versions
    ]
    if not versions and spec.version:
        versions = [CanonicalVersion(name=spec.version, served=True, storage=True)]
    if not versions:
        raise SchemaConversionError(
            f"CustomResourceDefinition {crd.metadata.name or spec.names.kind} declares no versions"
        )

    validation = spec.validation.openAPIV3Schema if spec.validation else None
    return CanonicalCRD(
        group=spec.group,
        kind=spec.names.kind,
        versions=versions,
        validation=_copy_schema(validation, "validation"),
    )


def _copy_schema(schema: Optional[Dict[str, Any]], where: str) -> Optional[Dict[str, Any]]:
    if schema is None:
        return None
    if not isinstance(schema, dict):
        raise SchemaConversionError(f"{where}: schema must be an object, got {type(schema).__name__}")
    return copy.deepcopy(schema)


def _widen_type(out: Dict[str, Any], extra: List[str]) -> None:
    current = out.get("type")
    if current is None:
        return
    types = list(current) if isinstance(current, list) else [current]
    for t in extra:
        if t not in types:
            types.append(t)
    out["type"] = types if len(types) > 1 else types[0]


def to_openapi_schema(props: Any, path: str = "") -> Dict[str, Any]:
    """Convert a structural schema into a JSON Schema document.

    Args:
        props: Structural schema (a mapping)
        path: Location of props in the enclosing schema, for error messages

    Returns:
        New JSON Schema mapping; the input is not modified

    Raises:
        SchemaConversionError: If the schema is malformed or uses $ref
    """
    where = path or "<root>"
    if not isinstance(props, dict):
        raise SchemaConversionError(f"{where}: schema must be an object, got {type(props).__name__}")
    if "$ref" in props:
        raise SchemaConversionError(f"{where}: $ref is not supported in resource schemas")

    out: Dict[str, Any] = {}
    for key, value in props.items():
        if key in DROPPED_KEYS or key == "nullable" or key.startswith("x-kubernetes-"):
            continue
        if key in _SCHEMA_KEYWORDS:
            out[key] = to_openapi_schema(value, f"{path}.{key}")
        elif key in _SCHEMA_LIST_KEYWORDS:
            if not isinstance(value, list):
                raise SchemaConversionError(f"{where}.{key}: expected a list of schemas")
            out[key] = [to_openapi_schema(v, f"{path}.{key}[{i}]") for i, v in enumerate(value)]
        elif key in _SCHEMA_MAP_KEYWORDS:
            if not isinstance(value, dict):
                raise SchemaConversionError(f"{where}.{key}: expected a mapping of schemas")
            out[key] = {name: to_openapi_schema(v, f"{path}.{key}.{name}") for name, v in value.items()}
        elif key in _SCHEMA_OR_BOOL_KEYWORDS:
            out[key] = value if isinstance(value, bool) else to_openapi_schema(value, f"{path}.{key}")
        elif key == "items":
            if isinstance(value, list):
                out[key] = [to_openapi_schema(v, f"{path}.items[{i}]") for i, v in enumerate(value)]
            else:
                out[key] = to_openapi_schema(value, f"{path}.items")
        elif key == "format":
            normalized = str(value).replace("-", "")
            if normalized in SUPPORTED_FORMATS:
                out[key] = "date-time" if normalized == "datetime" else value
        else:
            out[key] = copy.deepcopy(value)

    if props.get("x-kubernetes-int-or-string") is True:
        out["type"] = ["integer", "string"]
    if props.get("nullable") is True:
        _widen_type(out, ["null"])
        if isinstance(out.get("enum"), list) and None not in out["enum"]:
            out["enum"] = out["enum"] + [None]
    return out
