"""
Pydantic models for the Warden admission subsystem.

This module defines type-safe data models for the WardenConfig specification
and for the values that flow between the reconciliation steps: the cluster
capability tier, the trust bundle and the outcome of applying an object.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class ClusterCapabilityTier(str, Enum):
    """How far the hosting cluster can issue and inject service certificates."""

    MANAGED_PLATFORM_CURRENT = "ManagedPlatformCurrent"
    MANAGED_PLATFORM_LEGACY = "ManagedPlatformLegacy"
    UNMANAGED = "Unmanaged"


class ApplyResult(str, Enum):
    """Outcome of applying a single object to the cluster."""

    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class TrustBundle(BaseModel):
    """
    Certificate authority material for the admission subsystem.

    service_ca lets the aggregator trust the admission API service;
    cluster_ca lets the API server trust the webhooks it calls.
    """

    model_config = ConfigDict(frozen=True)

    service_ca: bytes = Field(..., description="PEM bytes of the service serving CA")
    cluster_ca: bytes = Field(..., description="PEM bytes of the cluster CA")


class OwnerReference(BaseModel):
    """Owner used to garbage-collect applied objects."""

    api_version: str
    kind: str
    name: str
    uid: str

    @classmethod
    def from_body(cls, body: dict[str, Any]) -> "OwnerReference":
        meta = body.get("metadata", {})
        return cls(
            api_version=body["apiVersion"],
            kind=body["kind"],
            name=meta["name"],
            uid=meta["uid"],
        )

    def to_manifest(self) -> dict[str, Any]:
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }


class WardenConfigSpec(BaseModel):
    """Specification of a WardenConfig resource."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    target_namespace: str | None = Field(
        None,
        alias="targetNamespace",
        description="Namespace for the admission subsystem (defaults to operator setting)",
    )
    image: str | None = Field(
        None, description="Image override for the admission deployment"
    )
    image_pull_policy: Literal["Always", "IfNotPresent", "Never"] | None = Field(
        None,
        alias="imagePullPolicy",
        description="Image pull policy override for the admission deployment",
    )

    def resolve_target_namespace(self, default: str) -> str:
        """Namespace the admission subsystem lives in."""
        return self.target_namespace or default
