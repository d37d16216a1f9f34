"""
Apply manifests to the cluster with garbage-collection ownership.

Each object is upserted on its own: read the live object, create it when it
is missing, leave it alone when it already matches, and patch it otherwise.
Patching (rather than replacing) keeps fields other controllers own, such as
a caBundle injected by the platform's service CA controller.
"""

import copy
import logging
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..errors import ConfigurationError, KubernetesAPIError
from ..models import ApplyResult, OwnerReference
from .kubernetes import set_owner_reference

logger = logging.getLogger(__name__)

# kind -> (API class name, method suffix, namespaced)
SUPPORTED_KINDS: dict[str, tuple[str, str, bool]] = {
    "Deployment": ("AppsV1Api", "deployment", True),
    "Service": ("CoreV1Api", "service", True),
    "ServiceAccount": ("CoreV1Api", "service_account", True),
    "ClusterRole": ("RbacAuthorizationV1Api", "cluster_role", False),
    "ClusterRoleBinding": ("RbacAuthorizationV1Api", "cluster_role_binding", False),
    "APIService": ("ApiregistrationV1Api", "api_service", False),
    "ValidatingWebhookConfiguration": (
        "AdmissionregistrationV1Api",
        "validating_webhook_configuration",
        False,
    ),
    "MutatingWebhookConfiguration": (
        "AdmissionregistrationV1Api",
        "mutating_webhook_configuration",
        False,
    ),
}


def is_subset(desired: Any, live: Any) -> bool:
    """Check recursively that every value in desired is present in live."""
    if isinstance(desired, dict):
        return isinstance(live, dict) and all(
            key in live and is_subset(value, live[key])
            for key, value in desired.items()
        )
    if isinstance(desired, list):
        return (
            isinstance(live, list)
            and len(desired) == len(live)
            and all(is_subset(d, v) for d, v in zip(desired, live, strict=True))
        )
    return desired == live


class ResourceApplier:
    """Upserts manifests through the typed Kubernetes APIs."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize resource applier.

        Args:
            k8s_client: Optional Kubernetes API client
        """
        self.k8s_client = k8s_client

    @property
    def api_client(self) -> client.ApiClient:
        if self.k8s_client is None:
            self.k8s_client = client.ApiClient()
        return self.k8s_client

    def _api_for(self, manifest: dict[str, Any]) -> tuple[Any, str, bool]:
        kind = manifest.get("kind", "")
        try:
            api_class, suffix, namespaced = SUPPORTED_KINDS[kind]
        except KeyError as e:
            raise ConfigurationError(f"Cannot apply unsupported kind '{kind}'") from e
        return getattr(client, api_class)(self.api_client), suffix, namespaced

    async def apply(
        self, manifest: dict[str, Any], owner: OwnerReference | None = None
    ) -> ApplyResult:
        """
        Create or update a single object.

        Args:
            manifest: Desired object; gains an owner reference when owner is set
            owner: Owner to garbage-collect the object with

        Returns:
            Whether the object was created, updated or already up to date

        Raises:
            ConfigurationError: If the kind is unsupported or a namespace is missing
            KubernetesAPIError: If any API call fails
        """
        if owner is not None:
            set_owner_reference(manifest, owner)

        api, suffix, namespaced = self._api_for(manifest)
        kind = manifest["kind"]
        metadata = manifest.get("metadata") or {}
        name = metadata.get("name")
        if not name:
            raise ConfigurationError(f"{kind} manifest has no metadata.name")

        scope: dict[str, str] = {}
        if namespaced:
            namespace = metadata.get("namespace")
            if not namespace:
                raise ConfigurationError(f"{kind} {name} has no metadata.namespace")
            scope["namespace"] = namespace
            infix = "namespaced_"
        else:
            infix = ""

        try:
            try:
                live = getattr(api, f"read_{infix}{suffix}")(name=name, **scope)
            except ApiException as e:
                if e.status != 404:
                    raise
                getattr(api, f"create_{infix}{suffix}")(body=manifest, **scope)
                result = ApplyResult.CREATED
            else:
                live_manifest = self.api_client.sanitize_for_serialization(live)
                if is_subset(manifest, live_manifest):
                    result = ApplyResult.UNCHANGED
                else:
                    getattr(api, f"patch_{infix}{suffix}")(
                        name=name, body=manifest, **scope
                    )
                    result = ApplyResult.UPDATED
        except ApiException as e:
            raise KubernetesAPIError(
                f"Failed to apply {kind} {name}: {e.reason}",
                reason=e.reason,
                retryable=e.status is None or e.status >= 500,
            ) from e

        from ..observability.metrics import metrics_collector

        metrics_collector.record_apply(kind, result.value)
        logger.debug(
            f"Applied {kind} {name}: {result.value}",
            extra={"kind": kind, "resource_name": name, "result": result.value},
        )
        return result

    async def apply_with_namespace_override(
        self,
        manifest: dict[str, Any],
        namespace: str,
        owner: OwnerReference | None = None,
    ) -> ApplyResult:
        """Rewrite the object's namespace, then apply it."""
        manifest.setdefault("metadata", {})["namespace"] = namespace
        return await self.apply(manifest, owner)

    async def apply_cluster_role_binding_with_subject_override(
        self,
        manifest: dict[str, Any],
        namespace: str,
        owner: OwnerReference | None = None,
    ) -> ApplyResult:
        """Point every ServiceAccount subject at namespace, then apply."""
        manifest = copy.deepcopy(manifest)
        for subject in manifest.get("subjects") or []:
            if subject.get("kind") == "ServiceAccount":
                subject["namespace"] = namespace
        return await self.apply(manifest, owner)
