"""Unit tests for Kubernetes utility functions."""

import base64
from unittest.mock import MagicMock, patch

import pytest
from kubernetes.config import ConfigException

from warden_operator.models import OwnerReference
from warden_operator.utils.kubernetes import (
    decode_secret_data,
    get_kubernetes_client,
    set_owner_reference,
)


@pytest.fixture
def owner():
    return OwnerReference(
        api_version="warden.io/v1", kind="WardenConfig", name="warden", uid="uid-1"
    )


class TestSetOwnerReference:
    """Test set_owner_reference."""

    def test_adds_reference(self, owner):
        manifest = {"metadata": {"name": "x"}}

        set_owner_reference(manifest, owner)

        assert manifest["metadata"]["ownerReferences"][0]["uid"] == "uid-1"

    def test_replaces_reference_to_same_owner(self, owner):
        manifest = {"metadata": {"name": "x"}}

        set_owner_reference(manifest, owner)
        set_owner_reference(manifest, owner)

        assert len(manifest["metadata"]["ownerReferences"]) == 1

    def test_keeps_other_owners(self, owner):
        other = {"apiVersion": "v1", "kind": "Namespace", "name": "n", "uid": "uid-2"}
        manifest = {"metadata": {"ownerReferences": [other]}}

        set_owner_reference(manifest, owner)

        assert [r["uid"] for r in manifest["metadata"]["ownerReferences"]] == [
            "uid-2",
            "uid-1",
        ]


class TestDecodeSecretData:
    """Test decode_secret_data."""

    def test_decodes_values(self):
        data = {"ca.crt": base64.b64encode(b"PEM").decode()}

        assert decode_secret_data(data) == {"ca.crt": b"PEM"}

    def test_none_is_empty(self):
        assert decode_secret_data(None) == {}

    def test_empty_value(self):
        assert decode_secret_data({"a": ""}) == {"a": b""}


class TestGetKubernetesClient:
    """Test get_kubernetes_client configuration loading."""

    @patch("warden_operator.utils.kubernetes.config")
    def test_prefers_in_cluster_config(self, mock_config):
        mock_config.ConfigException = ConfigException

        get_kubernetes_client()

        mock_config.load_incluster_config.assert_called_once()
        mock_config.load_kube_config.assert_not_called()

    @patch("warden_operator.utils.kubernetes.config")
    def test_falls_back_to_kubeconfig(self, mock_config):
        mock_config.ConfigException = ConfigException
        mock_config.load_incluster_config.side_effect = ConfigException("no pod")

        get_kubernetes_client()

        mock_config.load_kube_config.assert_called_once()

    @patch("warden_operator.utils.kubernetes.config")
    def test_raises_when_no_config(self, mock_config):
        mock_config.ConfigException = ConfigException
        mock_config.load_incluster_config.side_effect = ConfigException("no pod")
        mock_config.load_kube_config.side_effect = ConfigException("no file")

        with pytest.raises(ConfigException):
            get_kubernetes_client()


def test_client_is_returned():
    with patch("warden_operator.utils.kubernetes.config") as mock_config:
        mock_config.ConfigException = ConfigException
        with patch(
            "warden_operator.utils.kubernetes.client.ApiClient",
            return_value=MagicMock(name="api-client"),
        ) as api_client:
            assert get_kubernetes_client() is api_client.return_value
