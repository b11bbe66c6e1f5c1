"""Pydantic models for the objects carried in a package manifest stream.

Meta objects describe the package itself (Provider, Configuration). Body
objects are the schema-bearing resource definitions: CustomResourceDefinition
in its legacy (v1beta1) and current (v1) encodings, and
CompositeResourceDefinition in its legacy (v1beta1) and current (v1)
encodings. Anything else is kept as an UnknownObject.
"""

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

META_GROUP = "meta.pkg.crossplane.io"
CRD_GROUP = "apiextensions.k8s.io"
XRD_GROUP = "apiextensions.crossplane.io"

PROVIDER_KIND = "Provider"
CONFIGURATION_KIND = "Configuration"
CRD_KIND = "CustomResourceDefinition"
XRD_KIND = "CompositeResourceDefinition"
COMPOSITION_KIND = "Composition"


def split_api_version(api_version: str) -> tuple[str, str]:
    """Split "group/version" into (group, version). Core objects have group ""."""
    if "/" in api_version:
        group, _, version = api_version.partition("/")
        return group, version
    return "", api_version


class ObjectMeta(BaseModel):
    name: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", frozen=True)


class TypedObject(BaseModel):
    """Common header of every object in a package."""
    apiVersion: str
    kind: str
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def group(self) -> str:
        return split_api_version(self.apiVersion)[0]

    @property
    def version(self) -> str:
        return split_api_version(self.apiVersion)[1]

    def describe(self) -> str:
        name = self.metadata.name or "<unnamed>"
        return f"{self.apiVersion}, Kind={self.kind} {name}"


class UnknownObject(TypedObject):
    """An object whose (apiVersion, kind) has no typed model. Fields are preserved."""

    model_config = ConfigDict(extra="allow", frozen=True)


# --- Package meta objects ---


class MetaDependency(BaseModel):
    """A declared package dependency.

    Exactly one of `provider` or `configuration` names the package; `version`
    is a version constraint on it.
    """
    provider: Optional[str] = None
    configuration: Optional[str] = None
    version: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def validate_one_reference(self):
        """Enforce the provider/configuration union."""
        if self.provider is not None and self.configuration is not None:
            raise ValueError(
                f"dependency sets both provider {self.provider!r} and configuration "
                f"{self.configuration!r}; exactly one is allowed"
            )
        if self.provider is None and self.configuration is None:
            raise ValueError("dependency must set exactly one of provider or configuration")
        return self


class CrossplaneConstraints(BaseModel):
    version: str

    model_config = ConfigDict(extra="ignore", frozen=True)


class ControllerSpec(BaseModel):
    image: Optional[str] = None
    permissionRequests: List[Dict[str, Any]] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", frozen=True)


class MetaSpec(BaseModel):
    crossplane: Optional[CrossplaneConstraints] = None
    dependsOn: List[MetaDependency] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", frozen=True)


class ProviderSpec(MetaSpec):
    controller: Optional[ControllerSpec] = None


class ProviderMeta(TypedObject):
    apiVersion: Literal["meta.pkg.crossplane.io/v1", "meta.pkg.crossplane.io/v1alpha1"]
    kind: Literal["Provider"]
    spec: ProviderSpec = Field(default_factory=ProviderSpec)


class ConfigurationMeta(TypedObject):
    apiVersion: Literal["meta.pkg.crossplane.io/v1", "meta.pkg.crossplane.io/v1alpha1"]
    kind: Literal["Configuration"]
    spec: MetaSpec = Field(default_factory=MetaSpec)


PackageMeta = Union[ProviderMeta, ConfigurationMeta]


# --- CustomResourceDefinition (apiextensions.k8s.io) ---


class CustomResourceValidation(BaseModel):
    openAPIV3Schema: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class ResourceNames(BaseModel):
    kind: str
    plural: Optional[str] = None
    singular: Optional[str] = None
    listKind: Optional[str] = None

    model_config = ConfigDict(extra="ignore", frozen=True)


class CRDVersion(BaseModel):
    name: str
    served: bool = True
    storage: bool = False
    schema_: Optional[CustomResourceValidation] = Field(default=None, alias="schema")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class CRDSpecV1Beta1(BaseModel):
    group: str
    names: ResourceNames
    scope: str = "Namespaced"
    version: Optional[str] = None  # Deprecated single-version field
    versions: List[CRDVersion] = Field(default_factory=list)
    validation: Optional[CustomResourceValidation] = None  # Applies to all versions

    model_config = ConfigDict(extra="ignore", frozen=True)


class CRDSpecV1(BaseModel):
    group: str
    names: ResourceNames
    scope: str = "Namespaced"
    versions: List[CRDVersion]

    model_config = ConfigDict(extra="ignore", frozen=True)


class CustomResourceDefinitionV1Beta1(TypedObject):
    apiVersion: Literal["apiextensions.k8s.io/v1beta1"]
    kind: Literal["CustomResourceDefinition"]
    spec: CRDSpecV1Beta1


class CustomResourceDefinitionV1(TypedObject):
    apiVersion: Literal["apiextensions.k8s.io/v1"]
    kind: Literal["CustomResourceDefinition"]
    spec: CRDSpecV1


# --- CompositeResourceDefinition (apiextensions.crossplane.io) ---


class RawExtension(BaseModel):
    """Serialized JSON bytes of an embedded document."""
    raw: bytes

    model_config = ConfigDict(frozen=True)


class CompositeResourceValidation(BaseModel):
    openAPIV3Schema: Optional[RawExtension] = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("openAPIV3Schema", mode="before")
    @classmethod
    def encode_raw(cls, v: Any) -> Any:
        """Store the embedded schema as raw JSON bytes."""
        if v is None or isinstance(v, RawExtension):
            return v
        if isinstance(v, (bytes, str)):
            return RawExtension(raw=v.encode("utf-8") if isinstance(v, str) else v)
        try:
            return RawExtension(raw=json.dumps(v).encode("utf-8"))
        except (TypeError, ValueError) as e:
            raise ValueError(f"openAPIV3Schema is not JSON-serializable: {e}") from e


class XRDVersion(BaseModel):
    name: str
    served: bool = True
    referenceable: bool = False
    schema_: Optional[CompositeResourceValidation] = Field(default=None, alias="schema")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class XRDSpec(BaseModel):
    group: str
    names: ResourceNames
    claimNames: Optional[ResourceNames] = None
    versions: List[XRDVersion]

    model_config = ConfigDict(extra="ignore", frozen=True)


class CompositeResourceDefinitionV1Beta1(TypedObject):
    apiVersion: Literal["apiextensions.crossplane.io/v1beta1"]
    kind: Literal["CompositeResourceDefinition"]
    spec: XRDSpec


class CompositeResourceDefinitionV1(TypedObject):
    apiVersion: Literal["apiextensions.crossplane.io/v1"]
    kind: Literal["CompositeResourceDefinition"]
    spec: XRDSpec


BODY_MODELS = {
    ("apiextensions.k8s.io/v1beta1", CRD_KIND): CustomResourceDefinitionV1Beta1,
    ("apiextensions.k8s.io/v1", CRD_KIND): CustomResourceDefinitionV1,
    ("apiextensions.crossplane.io/v1beta1", XRD_KIND): CompositeResourceDefinitionV1Beta1,
    ("apiextensions.crossplane.io/v1", XRD_KIND): CompositeResourceDefinitionV1,
}

META_MODELS = {
    ("meta.pkg.crossplane.io/v1", PROVIDER_KIND): ProviderMeta,
    ("meta.pkg.crossplane.io/v1alpha1", PROVIDER_KIND): ProviderMeta,
    ("meta.pkg.crossplane.io/v1", CONFIGURATION_KIND): ConfigurationMeta,
    ("meta.pkg.crossplane.io/v1alpha1", CONFIGURATION_KIND): ConfigurationMeta,
}
