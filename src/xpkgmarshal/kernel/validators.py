"""Compile schema validators for a package's resource definitions.

Each body object is dispatched on its concrete shape:

1. legacy CustomResourceDefinition (apiextensions.k8s.io/v1beta1)
2. current CustomResourceDefinition (apiextensions.k8s.io/v1)
3. legacy CompositeResourceDefinition (apiextensions.crossplane.io/v1beta1)
4. current CompositeResourceDefinition (apiextensions.crossplane.io/v1)

Any other object fails the whole build. Every declared version yields one
(group, version, kind) entry in the schema index.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

from jsonschema import Draft4Validator, FormatChecker
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel

from xpkgmarshal.codes import MarshalCode, MarshalError
from .model import GroupVersionKind
from .objects import (
    CompositeResourceDefinitionV1,
    CompositeResourceDefinitionV1Beta1,
    CustomResourceDefinitionV1,
    CustomResourceDefinitionV1Beta1,
    TypedObject,
)
from .schema_convert import SchemaConversionError, canonicalize_v1beta1_crd, to_openapi_schema

logger = logging.getLogger(__name__)

ERR_OBJECT_NOT_KNOWN_TYPE = "object is not a known type"
ERR_CONVERT_SCHEMA = "failed to build schema validator"
ERR_CONFLICTING_SCHEMA = "conflicting schema for"

DuplicatePolicy = Literal["overwrite", "reject"]
XRD = Union[CompositeResourceDefinitionV1Beta1, CompositeResourceDefinitionV1]


class SchemaViolation(BaseModel):
    """A single schema violation in a validated document."""
    path: str  # Dotted path into the document, "" for the root
    message: str


class SchemaValidationResult(BaseModel):
    """Result of validating a document against a compiled schema."""
    ok: bool
    errors: List[SchemaViolation]


class SchemaValidator:
    """Executable validator for one converted schema document."""

    def __init__(self, schema: Dict[str, Any]):
        try:
            Draft4Validator.check_schema(schema)
        except SchemaError as e:
            raise SchemaConversionError(f"invalid schema: {e.message}") from e
        self.schema = schema
        self._validator = Draft4Validator(schema, format_checker=FormatChecker())

    def validate(self, document: Any) -> SchemaValidationResult:
        errors = [
            SchemaViolation(
                path=".".join(str(p) for p in error.absolute_path),
                message=error.message,
            )
            for error in self._validator.iter_errors(document)
        ]
        errors.sort(key=lambda v: (v.path, v.message))
        return SchemaValidationResult(ok=not errors, errors=errors)

    def is_valid(self, document: Any) -> bool:
        return self._validator.is_valid(document)


def compile_schema(props: Optional[Dict[str, Any]]) -> SchemaValidator:
    """Convert a structural schema and compile it. None compiles to a permissive validator."""
    if props is None:
        return SchemaValidator({})
    return SchemaValidator(to_openapi_schema(props))


def _validators_from_v1beta1_crd(crd: CustomResourceDefinitionV1Beta1) -> List[Tuple[GroupVersionKind, SchemaValidator]]:
    internal = canonicalize_v1beta1_crd(crd)
    if internal.validation is not None:
        # Top-level schema applies to every version
        sv = compile_schema(internal.validation)
        return [(GroupVersionKind(internal.group, v.name, internal.kind), sv) for v in internal.versions]
    return [
        (GroupVersionKind(internal.group, v.name, internal.kind), compile_schema(v.schema))
        for v in internal.versions
    ]


def _validators_from_v1_crd(crd: CustomResourceDefinitionV1) -> List[Tuple[GroupVersionKind, SchemaValidator]]:
    out = []
    for v in crd.spec.versions:
        if v.schema_ is None or v.schema_.openAPIV3Schema is None:
            raise SchemaConversionError(f"version {v.name} has no openAPIV3Schema")
        out.append((
            GroupVersionKind(crd.spec.group, v.name, crd.spec.names.kind),
            compile_schema(v.schema_.openAPIV3Schema),
        ))
    return out


def _validators_from_xrd(xrd: XRD) -> List[Tuple[GroupVersionKind, SchemaValidator]]:
    out = []
    for v in xrd.spec.versions:
        if v.schema_ is None or v.schema_.openAPIV3Schema is None:
            raise SchemaConversionError(f"version {v.name} has no openAPIV3Schema")
        try:
            props = json.loads(v.schema_.openAPIV3Schema.raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise SchemaConversionError(f"version {v.name}: cannot decode raw schema: {e}") from e
        out.append((
            GroupVersionKind(xrd.spec.group, v.name, xrd.spec.names.kind),
            compile_schema(props),
        ))
    return out


def validators_for(obj: TypedObject) -> List[Tuple[GroupVersionKind, SchemaValidator]]:
    """Compile the validators declared by a single body object.

    Raises:
        MarshalError: UNKNOWN_OBJECT_TYPE or SCHEMA_CONVERSION_FAILURE
    """
    try:
        if isinstance(obj, CustomResourceDefinitionV1Beta1):
            return _validators_from_v1beta1_crd(obj)
        elif isinstance(obj, CustomResourceDefinitionV1):
            return _validators_from_v1_crd(obj)
        elif isinstance(obj, CompositeResourceDefinitionV1Beta1):
            return _validators_from_xrd(obj)
        elif isinstance(obj, CompositeResourceDefinitionV1):
            return _validators_from_xrd(obj)
    except SchemaConversionError as e:
        raise MarshalError(
            MarshalCode.SCHEMA_CONVERSION_FAILURE,
            f"{ERR_CONVERT_SCHEMA} for {obj.describe()}: {e}"
        ) from e
    raise MarshalError(
        MarshalCode.UNKNOWN_OBJECT_TYPE,
        f"{ERR_OBJECT_NOT_KNOWN_TYPE}: {obj.describe()}"
    )


def build_validators(
    objects: List[TypedObject],
    duplicate_schemas: DuplicatePolicy = "overwrite",
) -> Dict[GroupVersionKind, SchemaValidator]:
    """Build the (group, version, kind) -> validator index for body objects.

    With duplicate_schemas="overwrite" a later entry replaces an earlier one
    for the same key; with "reject" a duplicate key is a CONFLICTING_SCHEMA
    failure.
    """
    index: Dict[GroupVersionKind, SchemaValidator] = {}
    for obj in objects:
        for gvk, sv in validators_for(obj):
            if gvk in index:
                if duplicate_schemas == "reject":
                    raise MarshalError(
                        MarshalCode.CONFLICTING_SCHEMA,
                        f"{ERR_CONFLICTING_SCHEMA} {gvk} declared by {obj.describe()}"
                    )
                logger.debug("Overwriting schema for %s with %s", gvk, obj.describe())
            index[gvk] = sv
    logger.debug("Built %d schema validator(s) from %d object(s)", len(index), len(objects))
    return index
