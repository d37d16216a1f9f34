"""
Trust material handling for the admission subsystem.

This module handles the certificate side of reconciliation:
- Locating the cluster and service CAs from service account token secrets
- Injecting those CAs into the APIService and webhook configurations
- Fingerprinting the serving certificate secret onto the deployment
- Fingerprinting the aggregator client CA published by the API server

The operator never issues certificates; it only discovers, injects and
fingerprints material that already exists in the cluster.
"""

import base64
import logging
from collections.abc import Iterable
from typing import Any

from kubernetes import client
from kubernetes.client.rest import ApiException

from ..constants import (
    AGGREGATOR_CA_CONFIGMAP_KEY,
    AGGREGATOR_CA_CONFIGMAP_NAME,
    AGGREGATOR_CA_CONFIGMAP_NAMESPACE,
    CLUSTER_CA_KEY,
    ERROR_MISSING_SECRET_KEY,
    ERROR_NO_TOKEN_SECRET,
    SERVICE_ACCOUNT_TOKEN_SECRET_TYPE,
    SERVICE_CA_KEY,
    SERVING_CERT_SECRET_HASH_ANNOTATION,
)
from ..errors import (
    KubernetesAPIError,
    MissingKeyError,
    ReconciliationError,
    TrustBundleNotFoundError,
)
from ..models import TrustBundle
from .fingerprint import compute_data_fingerprint
from .kubernetes import decode_secret_data

logger = logging.getLogger(__name__)


class CertificateSource:
    """Locates CA material in a namespace's service account token secrets."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        """
        Initialize certificate source.

        Args:
            k8s_client: Optional Kubernetes API client
        """
        self.k8s_client = k8s_client
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        """Get CoreV1Api client."""
        if self._v1 is None:
            self._v1 = client.CoreV1Api(self.k8s_client)
        return self._v1

    async def locate_trust_bundle(self, namespace: str) -> TrustBundle:
        """
        Read the cluster and service CAs from a service account token secret.

        The first secret of the token type in listing order wins. Listing
        order is not stable, but every token secret carries the same CAs.

        Args:
            namespace: Namespace to scan

        Returns:
            Trust bundle; service_ca falls back to the cluster CA when the
            secret has no dedicated service CA

        Raises:
            TrustBundleNotFoundError: If no token secret exists
            MissingKeyError: If the matched secret has no cluster CA
            KubernetesAPIError: If listing secrets fails
        """
        logger.debug(f"Listing secrets in {namespace} namespace")
        try:
            secrets = self.v1.list_namespaced_secret(namespace=namespace)
        except ApiException as e:
            logger.error(f"Error listing secrets in namespace {namespace}: {e.reason}")
            raise KubernetesAPIError(
                f"Failed to list secrets in namespace {namespace}: {e.reason}",
                reason=e.reason,
            ) from e

        items = secrets.items or []
        logger.debug(f"Found {len(items)} secrets in {namespace}")
        token_secret = next(
            (s for s in items if s.type == SERVICE_ACCOUNT_TOKEN_SECRET_TYPE), None
        )
        if token_secret is None:
            raise TrustBundleNotFoundError(
                ERROR_NO_TOKEN_SECRET.format(
                    SERVICE_ACCOUNT_TOKEN_SECRET_TYPE, namespace
                ),
                namespace=namespace,
            )

        secret_name = token_secret.metadata.name
        data = decode_secret_data(token_secret.data)
        if CLUSTER_CA_KEY not in data:
            raise MissingKeyError(
                ERROR_MISSING_SECRET_KEY.format(secret_name, CLUSTER_CA_KEY),
                secret_name=secret_name,
                key=CLUSTER_CA_KEY,
            )
        cluster_ca = data[CLUSTER_CA_KEY]

        service_ca = data.get(SERVICE_CA_KEY)
        if service_ca is None:
            logger.warning(
                f"Secret {secret_name} did not contain key {SERVICE_CA_KEY}, "
                f"likely not running on a managed platform, using {CLUSTER_CA_KEY} instead",
                extra={"secret_name": secret_name, "namespace": namespace},
            )
            service_ca = cluster_ca

        return TrustBundle(service_ca=service_ca, cluster_ca=cluster_ca)


def _encode_ca(ca: bytes) -> str:
    return base64.b64encode(ca).decode("ascii")


def inject_trust_bundle(
    api_service: dict[str, Any],
    validating_webhooks: Iterable[dict[str, Any]],
    mutating_webhooks: Iterable[dict[str, Any]],
    trust_bundle: TrustBundle,
) -> None:
    """
    Write CA bundles into the APIService and every webhook entry.

    The service CA goes to the aggregated API service, the cluster CA to
    every webhook of every validating and mutating configuration. Pure
    in-memory mutation; applying it twice yields the same objects.
    """
    api_service.setdefault("spec", {})["caBundle"] = _encode_ca(
        trust_bundle.service_ca
    )

    cluster_ca = _encode_ca(trust_bundle.cluster_ca)
    for configuration in [*validating_webhooks, *mutating_webhooks]:
        for webhook in configuration.get("webhooks") or []:
            client_config = webhook.get("clientConfig")
            if client_config is None:
                client_config = webhook["clientConfig"] = {}
            client_config["caBundle"] = cluster_ca


class DeploymentCertAnnotator:
    """Stamps the serving certificate fingerprint onto a deployment."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        self.k8s_client = k8s_client
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        if self._v1 is None:
            self._v1 = client.CoreV1Api(self.k8s_client)
        return self._v1

    async def stamp_serving_cert_fingerprint(
        self, workload: dict[str, Any], namespace: str, secret_name: str
    ) -> KubernetesAPIError | None:
        """
        Annotate the pod template with the serving cert secret fingerprint.

        A missing secret is expected while a certificate issuer creates it
        asynchronously, so it is stamped as empty content; the fingerprint
        changes once the real content appears, which rolls the deployment.
        Any other read failure leaves the annotation untouched and is
        returned to the caller for reporting instead of being raised.

        Args:
            workload: Deployment manifest to annotate in place
            namespace: Namespace of the secret
            secret_name: Name of the serving cert secret

        Returns:
            The read error when the secret could not be fetched, else None

        Raises:
            ReconciliationError: If the workload has no pod template
        """
        template = (workload.get("spec") or {}).get("template")
        if not isinstance(template, dict):
            raise ReconciliationError(
                f"Deployment {workload.get('metadata', {}).get('name')} has no pod template",
                retryable=False,
            )

        from ..observability.metrics import metrics_collector

        try:
            secret = self.v1.read_namespaced_secret(
                name=secret_name, namespace=namespace
            )
            data = decode_secret_data(secret.data)
            metrics_collector.record_serving_cert_secret(namespace, secret_name, True)
        except ApiException as e:
            if e.status != 404:
                logger.error(
                    f"Error getting serving cert secret {secret_name}: {e.reason}",
                    extra={"secret_name": secret_name, "namespace": namespace},
                )
                return KubernetesAPIError(
                    f"Failed to read secret {namespace}/{secret_name}: {e.reason}",
                    reason=e.reason,
                )
            logger.warning(
                f"Serving cert secret {secret_name} not found, hashing empty content",
                extra={"secret_name": secret_name, "namespace": namespace},
            )
            metrics_collector.record_serving_cert_secret(namespace, secret_name, False)
            data = {}

        logger.info("Hashing serving cert secret onto the admission deployment")
        metadata = template.get("metadata")
        if metadata is None:
            metadata = template["metadata"] = {}
        annotations = metadata.get("annotations")
        if annotations is None:
            annotations = metadata["annotations"] = {}
        annotations[SERVING_CERT_SECRET_HASH_ANNOTATION] = compute_data_fingerprint(
            data
        )
        return None


class AggregatorCASource:
    """Fingerprints the client CA the aggregator presents to API services."""

    def __init__(self, k8s_client: client.ApiClient | None = None):
        self.k8s_client = k8s_client
        self._v1: client.CoreV1Api | None = None

    @property
    def v1(self) -> client.CoreV1Api:
        if self._v1 is None:
            self._v1 = client.CoreV1Api(self.k8s_client)
        return self._v1

    async def compute_hash(self) -> str:
        """
        Fingerprint the request header client CA published by the API server.

        Raises:
            KubernetesAPIError: If the ConfigMap cannot be read
        """
        try:
            config_map = self.v1.read_namespaced_config_map(
                name=AGGREGATOR_CA_CONFIGMAP_NAME,
                namespace=AGGREGATOR_CA_CONFIGMAP_NAMESPACE,
            )
            ca = (config_map.data or {}).get(AGGREGATOR_CA_CONFIGMAP_KEY)
        except ApiException as e:
            if e.status != 404:
                raise KubernetesAPIError(
                    f"Failed to read ConfigMap {AGGREGATOR_CA_CONFIGMAP_NAMESPACE}/"
                    f"{AGGREGATOR_CA_CONFIGMAP_NAME}: {e.reason}",
                    reason=e.reason,
                ) from e
            ca = None

        if ca is None:
            logger.warning(
                f"Aggregator client CA not published in {AGGREGATOR_CA_CONFIGMAP_NAMESPACE}/"
                f"{AGGREGATOR_CA_CONFIGMAP_NAME}, hashing empty content"
            )
            return compute_data_fingerprint({})

        return compute_data_fingerprint({AGGREGATOR_CA_CONFIGMAP_KEY: ca.encode("utf-8")})
