"""Tests for converting structural schemas into JSON Schema documents."""

import pytest

from xpkgmarshal.kernel.objects import CustomResourceDefinitionV1Beta1
from xpkgmarshal.kernel.schema_convert import (
    SchemaConversionError,
    canonicalize_v1beta1_crd,
    to_openapi_schema,
)
from builders import crd_v1beta1, object_schema


def test_nullable_widens_type_and_enum():
    out = to_openapi_schema({"type": "string", "nullable": True, "enum": ["a", "b"]})

    assert out == {"type": ["string", "null"], "enum": ["a", "b", None]}


def test_nullable_without_type_is_dropped():
    assert to_openapi_schema({"nullable": True, "description": "d"}) == {"description": "d"}


def test_int_or_string_becomes_union_type():
    out = to_openapi_schema({"x-kubernetes-int-or-string": True, "anyOf": [{"type": "integer"}, {"type": "string"}]})

    assert out["type"] == ["integer", "string"]
    assert "x-kubernetes-int-or-string" not in out


def test_kubernetes_extensions_and_documentation_keys_are_dropped():
    out = to_openapi_schema({
        "type": "object",
        "x-kubernetes-preserve-unknown-fields": True,
        "x-kubernetes-list-type": "atomic",
        "example": {"a": 1},
        "externalDocs": {"url": "https://example.org"},
        "$schema": "http://json-schema.org/draft-04/schema#",
        "description": "kept",
    })

    assert out == {"type": "object", "description": "kept"}


def test_conversion_recurses_into_nested_schemas():
    out = to_openapi_schema({
        "type": "object",
        "properties": {
            "list": {"type": "array", "items": {"type": "string", "nullable": True}},
            "map": {"type": "object", "additionalProperties": {"type": "integer", "x-kubernetes-int-or-string": True}},
            "choice": {"oneOf": [{"type": "string", "nullable": True}], "not": {"type": "boolean", "example": True}},
        },
        "additionalProperties": False,
    })

    props = out["properties"]
    assert props["list"]["items"]["type"] == ["string", "null"]
    assert props["map"]["additionalProperties"]["type"] == ["integer", "string"]
    assert props["choice"]["oneOf"][0]["type"] == ["string", "null"]
    assert props["choice"]["not"] == {"type": "boolean"}
    assert out["additionalProperties"] is False


@pytest.mark.parametrize(
    "fmt, kept",
    [
        ("email", "email"),
        ("date-time", "date-time"),
        ("datetime", "date-time"),
        ("uuid", "uuid"),
        ("int32", None),
        ("quantity", None),
        ("duration", None),
    ],
)
def test_formats(fmt, kept):
    out = to_openapi_schema({"type": "string", "format": fmt})

    assert out.get("format") == kept


def test_conversion_does_not_modify_input():
    props = {"type": "string", "nullable": True, "x-kubernetes-list-type": "atomic"}

    to_openapi_schema(props)

    assert props == {"type": "string", "nullable": True, "x-kubernetes-list-type": "atomic"}


@pytest.mark.parametrize(
    "props, fragment",
    [
        ({"$ref": "#/definitions/a"}, "$ref is not supported"),
        ({"properties": {"a": {"$ref": "#/x"}}}, ".properties.a: $ref"),
        ("not a schema", "schema must be an object"),
        ({"allOf": {"type": "string"}}, "expected a list of schemas"),
        ({"properties": ["a"]}, "expected a mapping of schemas"),
    ],
)
def test_conversion_errors(props, fragment):
    with pytest.raises(SchemaConversionError) as excinfo:
        to_openapi_schema(props)
    assert fragment in str(excinfo.value)


def test_canonicalize_expands_deprecated_version():
    crd = CustomResourceDefinitionV1Beta1.model_validate(
        crd_v1beta1(versions=[], version="v1alpha1", validation=object_schema("spec"))
    )

    internal = canonicalize_v1beta1_crd(crd)

    assert [(v.name, v.served, v.storage) for v in internal.versions] == [("v1alpha1", True, True)]
    assert internal.validation == object_schema("spec")
    assert internal.kind == "Widget"
    assert internal.group == "example.org"


def test_canonicalize_keeps_per_version_schemas():
    crd = CustomResourceDefinitionV1Beta1.model_validate(
        crd_v1beta1(versions=["v1", "v2"], version_schemas={"v2": object_schema("spec")})
    )

    internal = canonicalize_v1beta1_crd(crd)

    assert [v.name for v in internal.versions] == ["v1", "v2"]
    assert internal.versions[0].schema is None
    assert internal.versions[1].schema == object_schema("spec")
    assert internal.validation is None


def test_canonicalize_rejects_crd_without_versions():
    crd = CustomResourceDefinitionV1Beta1.model_validate(crd_v1beta1(versions=[]))

    with pytest.raises(SchemaConversionError) as excinfo:
        canonicalize_v1beta1_crd(crd)
    assert "declares no versions" in str(excinfo.value)
