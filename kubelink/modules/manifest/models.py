"""
Kubelink resource manifests.

One model per supported kind, selected by the ``kind`` discriminator.
Only the fields the reconciler reads or writes are typed; the rest of a
manifest is carried through untouched.
"""

import copy
from enum import Enum
from typing import Annotated, Any, ClassVar, Dict, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ResourceKind(str, Enum):
    """Kubernetes kinds kubelink talks to."""

    DEPLOYMENT = "Deployment"
    SERVICE = "Service"
    CONFIG_MAP = "ConfigMap"
    SECRET = "Secret"
    POD = "Pod"

    @property
    def label(self) -> str:
        """Lowercase name used in result and report strings."""
        return self.value.lower()


class ObjectMeta(BaseModel):
    """Manifest metadata. Unknown keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    name: str = Field(..., min_length=1)
    namespace: Optional[str] = None
    labels: Optional[Dict[str, str]] = None
    annotations: Optional[Dict[str, str]] = None


class Manifest(BaseModel):
    """Base for all supported manifests."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Top-level fields an update copies from the desired manifest
    merged_fields: ClassVar[Tuple[str, ...]] = ()

    api_version: str = Field(..., alias="apiVersion")
    kind: str
    metadata: ObjectMeta

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def resource_kind(self) -> ResourceKind:
        return ResourceKind(self.kind)

    def to_body(self) -> Dict[str, Any]:
        """
        Render the manifest as a request body.

        The namespace is owned by the resource client, so any namespace
        carried by the manifest is dropped.
        """
        body = self.model_dump(by_alias=True, exclude_none=True)
        body["metadata"].pop("namespace", None)
        return body

    def merge_into(self, current: Dict[str, Any]) -> Dict[str, Any]:
        """
        Overlay this manifest onto a stored object.

        Labels, annotations and the kind's payload fields are replaced
        wholesale; every other field of ``current`` (resourceVersion,
        status, uid...) is preserved so the update stays conditional on
        the version that was read.

        Args:
            current: Stored object as returned by the resource client

        Returns:
            New body suitable for a replace call
        """
        merged = copy.deepcopy(current)
        metadata = merged.setdefault("metadata", {})
        for key, value in (
            ("labels", self.metadata.labels),
            ("annotations", self.metadata.annotations),
        ):
            if value is None:
                metadata.pop(key, None)
            else:
                metadata[key] = dict(value)

        desired = self.to_body()
        for field in self.merged_fields:
            if field in desired:
                merged[field] = desired[field]
            else:
                merged.pop(field, None)
        return merged


class DeploymentManifest(Manifest):
    merged_fields: ClassVar[Tuple[str, ...]] = ("spec",)

    api_version: Literal["apps/v1"] = Field(..., alias="apiVersion")
    kind: Literal["Deployment"]
    spec: Dict[str, Any] = Field(default_factory=dict)


class ServiceManifest(Manifest):
    merged_fields: ClassVar[Tuple[str, ...]] = ("spec",)

    api_version: Literal["v1"] = Field(..., alias="apiVersion")
    kind: Literal["Service"]
    spec: Dict[str, Any] = Field(default_factory=dict)

    def merge_into(self, current: Dict[str, Any]) -> Dict[str, Any]:
        merged = super().merge_into(current)
        # clusterIP is immutable once allocated
        current_spec = current.get("spec") or {}
        for key in ("clusterIP", "clusterIPs"):
            if key in current_spec and key not in merged["spec"]:
                merged["spec"][key] = copy.deepcopy(current_spec[key])
        return merged


class ConfigMapManifest(Manifest):
    merged_fields: ClassVar[Tuple[str, ...]] = ("data", "binaryData")

    api_version: Literal["v1"] = Field(..., alias="apiVersion")
    kind: Literal["ConfigMap"]
    data: Optional[Dict[str, str]] = None
    binary_data: Optional[Dict[str, str]] = Field(None, alias="binaryData")


class SecretManifest(Manifest):
    merged_fields: ClassVar[Tuple[str, ...]] = ("type", "data", "stringData")

    api_version: Literal["v1"] = Field(..., alias="apiVersion")
    kind: Literal["Secret"]
    type: Optional[str] = None
    data: Optional[Dict[str, str]] = None
    string_data: Optional[Dict[str, str]] = Field(None, alias="stringData")


AnyManifest = Annotated[
    Union[DeploymentManifest, ServiceManifest, ConfigMapManifest, SecretManifest],
    Field(discriminator="kind"),
]

MANIFEST_KINDS = frozenset(
    {
        ResourceKind.DEPLOYMENT,
        ResourceKind.SERVICE,
        ResourceKind.CONFIG_MAP,
        ResourceKind.SECRET,
    }
)

manifest_adapter: TypeAdapter = TypeAdapter(AnyManifest)
