"""
Cluster capability detection for the Warden operator.

There is no universal API telling whether a cluster injects service CAs on
its own. Two independent probes answer it instead:

- is the cluster a managed platform at all (its API group is served)?
- is it a legacy release of that platform (its version CRD is missing)?

Injection is required when the cluster is not managed, or is managed but
legacy. Neither answer is cached: each call reflects live cluster state.
"""

import logging

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..errors import EnvironmentDetectionError
from ..models import ClusterCapabilityTier
from ..settings import settings

logger = logging.getLogger(__name__)


class EnvironmentDetector:
    """Probes the cluster for service certificate automation."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        self.k8s_client = k8s_client

    async def is_legacy_platform(self) -> bool:
        """
        Check whether the platform version CRD is absent.

        Returns:
            True when the CRD does not exist, False when it does

        Raises:
            EnvironmentDetectionError: If the lookup fails for any other reason
        """
        crd_name = settings.platform_version_crd
        extensions_api = client.ApiextensionsV1Api(self.k8s_client)
        try:
            extensions_api.read_custom_resource_definition(name=crd_name)
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"CRD {crd_name} not found, platform is a legacy release")
                return True
            logger.error(f"Error fetching CRD {crd_name}: {e.reason}")
            raise EnvironmentDetectionError(
                f"Failed to look up CRD {crd_name}: {e.reason}",
                reason=e.reason,
                retryable=e.status is None or e.status >= 500,
            ) from e
        return False

    async def is_managed_platform(self) -> bool:
        """
        Check whether the managed platform API group is served.

        Raises:
            EnvironmentDetectionError: If API discovery fails
        """
        group_name = settings.platform_api_group
        apis_api = client.ApisApi(self.k8s_client)
        try:
            group_list = apis_api.get_api_versions()
        except ApiException as e:
            logger.error(f"Error discovering API groups: {e.reason}")
            raise EnvironmentDetectionError(
                f"Failed to discover API groups: {e.reason}",
                reason=e.reason,
                retryable=e.status is None or e.status >= 500,
            ) from e
        return any(group.name == group_name for group in group_list.groups or [])

    async def requires_ca_injection(self) -> bool:
        """
        Decide whether trust material must be injected by the operator.

        Legacy managed platforms and unmanaged clusters both lack automatic
        CA injection, for different reasons; either one is enough.
        """
        legacy = await self.is_legacy_platform()
        managed = await self.is_managed_platform()
        requires_injection = not managed or legacy
        logger.info(
            f"CA injection {'required' if requires_injection else 'not required'}",
            extra={
                "managed_platform": managed,
                "legacy_platform": legacy,
                "requires_injection": requires_injection,
            },
        )
        return requires_injection

    async def detect_tier(self) -> ClusterCapabilityTier:
        """
        Classify the cluster from the same two probes.

        Unlike a classification from the version CRD alone, a cluster that
        does not serve the platform API group is reported as Unmanaged rather
        than ManagedPlatformLegacy. The tier is only logged; the reconciler
        gates on requires_ca_injection.
        """
        legacy = await self.is_legacy_platform()
        managed = await self.is_managed_platform()
        if not managed:
            return ClusterCapabilityTier.UNMANAGED
        if legacy:
            return ClusterCapabilityTier.MANAGED_PLATFORM_LEGACY
        return ClusterCapabilityTier.MANAGED_PLATFORM_CURRENT
