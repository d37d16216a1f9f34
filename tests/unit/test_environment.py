"""Unit tests for cluster capability detection."""

from unittest.mock import MagicMock, patch

import pytest
from kubernetes import client
from kubernetes.client.rest import ApiException

from warden_operator.errors import EnvironmentDetectionError
from warden_operator.models import ClusterCapabilityTier
from warden_operator.utils.environment import EnvironmentDetector


def _group_list(*names: str) -> client.V1APIGroupList:
    return client.V1APIGroupList(
        groups=[
            client.V1APIGroup(
                name=name,
                versions=[
                    client.V1GroupVersionForDiscovery(
                        group_version=f"{name}/v1", version="v1"
                    )
                ],
            )
            for name in names
        ]
    )


@pytest.fixture
def extensions_api():
    api = MagicMock()
    with patch("kubernetes.client.ApiextensionsV1Api", return_value=api):
        yield api


@pytest.fixture
def apis_api():
    api = MagicMock()
    with patch("kubernetes.client.ApisApi", return_value=api):
        yield api


class TestIsLegacyPlatform:
    """Test the platform version CRD probe."""

    @pytest.mark.asyncio
    async def test_crd_missing_means_legacy(self, extensions_api):
        extensions_api.read_custom_resource_definition.side_effect = ApiException(
            status=404
        )

        assert await EnvironmentDetector().is_legacy_platform() is True

    @pytest.mark.asyncio
    async def test_crd_present_means_current(self, extensions_api):
        extensions_api.read_custom_resource_definition.return_value = MagicMock()

        assert await EnvironmentDetector().is_legacy_platform() is False
        extensions_api.read_custom_resource_definition.assert_called_once_with(
            name="clusterversions.config.openshift.io"
        )

    @pytest.mark.asyncio
    async def test_server_error_is_retryable(self, extensions_api):
        extensions_api.read_custom_resource_definition.side_effect = ApiException(
            status=500, reason="Internal Server Error"
        )

        with pytest.raises(EnvironmentDetectionError) as exc_info:
            await EnvironmentDetector().is_legacy_platform()

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_forbidden_is_not_retryable(self, extensions_api):
        extensions_api.read_custom_resource_definition.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(EnvironmentDetectionError) as exc_info:
            await EnvironmentDetector().is_legacy_platform()

        assert exc_info.value.retryable is False
        assert exc_info.value.reason == "Forbidden"


class TestIsManagedPlatform:
    """Test the platform API group probe."""

    @pytest.mark.asyncio
    async def test_group_served(self, apis_api):
        apis_api.get_api_versions.return_value = _group_list(
            "apps", "route.openshift.io"
        )

        assert await EnvironmentDetector().is_managed_platform() is True

    @pytest.mark.asyncio
    async def test_group_not_served(self, apis_api):
        apis_api.get_api_versions.return_value = _group_list("apps", "batch")

        assert await EnvironmentDetector().is_managed_platform() is False

    @pytest.mark.asyncio
    async def test_discovery_failure_raises(self, apis_api):
        apis_api.get_api_versions.side_effect = ApiException(status=503)

        with pytest.raises(EnvironmentDetectionError):
            await EnvironmentDetector().is_managed_platform()


class TestRequiresCaInjection:
    """Test the combined injection decision."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("crd_present", "groups", "expected", "tier"),
        [
            (False, ("apps",), True, ClusterCapabilityTier.UNMANAGED),
            (True, ("apps",), True, ClusterCapabilityTier.UNMANAGED),
            (
                False,
                ("route.openshift.io",),
                True,
                ClusterCapabilityTier.MANAGED_PLATFORM_LEGACY,
            ),
            (
                True,
                ("route.openshift.io",),
                False,
                ClusterCapabilityTier.MANAGED_PLATFORM_CURRENT,
            ),
        ],
    )
    async def test_decision_per_tier(
        self, extensions_api, apis_api, crd_present, groups, expected, tier
    ):
        if not crd_present:
            extensions_api.read_custom_resource_definition.side_effect = (
                ApiException(status=404)
            )
        apis_api.get_api_versions.return_value = _group_list(*groups)
        detector = EnvironmentDetector()

        assert await detector.requires_ca_injection() is expected
        assert await detector.detect_tier() == tier

    @pytest.mark.asyncio
    async def test_legacy_probe_error_propagates(self, extensions_api, apis_api):
        extensions_api.read_custom_resource_definition.side_effect = ApiException(
            status=500
        )

        with pytest.raises(EnvironmentDetectionError):
            await EnvironmentDetector().requires_ca_injection()
        apis_api.get_api_versions.assert_not_called()

    @pytest.mark.asyncio
    async def test_managed_probe_error_propagates(self, extensions_api, apis_api):
        apis_api.get_api_versions.side_effect = ApiException(status=500)

        with pytest.raises(EnvironmentDetectionError):
            await EnvironmentDetector().requires_ca_injection()

    @pytest.mark.asyncio
    async def test_not_cached_between_calls(self, extensions_api, apis_api):
        apis_api.get_api_versions.return_value = _group_list("route.openshift.io")
        detector = EnvironmentDetector()

        assert await detector.requires_ca_injection() is False

        extensions_api.read_custom_resource_definition.side_effect = ApiException(
            status=404
        )
        assert await detector.requires_ca_injection() is True
