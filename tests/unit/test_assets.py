"""Unit tests for bundled manifest assets."""

from unittest.mock import MagicMock, patch

import pytest

from warden_operator.constants import (
    ADMISSION_DEPLOYMENT_NAME,
    ADMISSION_SERVING_CERT_SECRET_NAME,
    API_SERVICE_ASSET,
    CLUSTER_ASSETS,
    CLUSTER_ROLE_BINDING_ASSETS,
    DEPLOYMENT_ASSET,
    NAMESPACED_ASSETS,
    VALIDATING_WEBHOOK_ASSETS,
)
from warden_operator.errors import AssetError, ConfigurationError
from warden_operator.utils.apply import SUPPORTED_KINDS
from warden_operator.utils.assets import load_asset, load_assets

ALL_ASSETS = [
    *NAMESPACED_ASSETS,
    *CLUSTER_ASSETS,
    *CLUSTER_ROLE_BINDING_ASSETS,
    DEPLOYMENT_ASSET,
    API_SERVICE_ASSET,
    *VALIDATING_WEBHOOK_ASSETS,
]


class TestBundledAssets:
    """Every bundled manifest loads and can be applied."""

    @pytest.mark.parametrize("path", ALL_ASSETS)
    def test_asset_is_applicable(self, path):
        manifest = load_asset(path)

        assert manifest["kind"] in SUPPORTED_KINDS
        assert manifest["metadata"]["name"]

    def test_deployment_mounts_serving_cert_secret(self):
        deployment = load_asset(DEPLOYMENT_ASSET)

        assert deployment["metadata"]["name"] == ADMISSION_DEPLOYMENT_NAME
        secret_names = [
            volume["secret"]["secretName"]
            for volume in deployment["spec"]["template"]["spec"]["volumes"]
            if "secret" in volume
        ]
        assert ADMISSION_SERVING_CERT_SECRET_NAME in secret_names

    def test_webhooks_have_one_entry_each(self):
        for webhook in load_assets(VALIDATING_WEBHOOK_ASSETS):
            assert webhook["kind"] == "ValidatingWebhookConfiguration"
            assert len(webhook["webhooks"]) == 1
            assert "caBundle" not in webhook["webhooks"][0]["clientConfig"]

    def test_api_service_has_no_ca_bundle(self):
        assert "caBundle" not in load_asset(API_SERVICE_ASSET)["spec"]

    def test_load_assets_preserves_order(self):
        names = [m["metadata"]["name"] for m in load_assets(VALIDATING_WEBHOOK_ASSETS)]

        assert names == [
            "policies.admission.warden.io",
            "policybindings.admission.warden.io",
            "exemptions.admission.warden.io",
        ]

    def test_each_load_returns_fresh_copy(self):
        first = load_asset(DEPLOYMENT_ASSET)
        first["metadata"]["namespace"] = "changed"

        assert load_asset(DEPLOYMENT_ASSET)["metadata"]["namespace"] == "warden"


class TestLoadAssetErrors:
    """Test load_asset failure modes."""

    def test_missing_asset(self):
        with pytest.raises(AssetError) as exc_info:
            load_asset("does-not-exist.yaml")

        assert exc_info.value.path == "does-not-exist.yaml"
        assert exc_info.value.retryable is False
        assert isinstance(exc_info.value, ConfigurationError)

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("kind: [unclosed", "invalid YAML"),
            ("- just\n- a list\n", "not a Kubernetes object"),
            ("metadata:\n  name: x\n", "not a Kubernetes object"),
        ],
    )
    def test_invalid_content(self, content, message):
        resource = MagicMock()
        resource.joinpath.return_value.read_text.return_value = content

        with patch(
            "warden_operator.utils.assets.resources.files", return_value=resource
        ):
            with pytest.raises(AssetError, match=message):
                load_asset("broken.yaml")
