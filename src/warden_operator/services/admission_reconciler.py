"""
Admission subsystem reconciler.

This module provisions the in-cluster admission subsystem: the supporting
service, RBAC and service account objects, the admission deployment, the
aggregated APIService and the validating webhook configurations. On clusters
without automatic service CA injection it also writes the trust material
into the APIService and webhooks itself.
"""

from typing import Any

from kubernetes import client
from pydantic import ValidationError as PydanticValidationError

from ..constants import (
    ADMISSION_SERVING_CERT_SECRET_NAME,
    AGGREGATOR_CLIENT_CA_HASH_ANNOTATION,
    API_SERVICE_ASSET,
    CLUSTER_ASSETS,
    CLUSTER_ROLE_BINDING_ASSETS,
    DEPLOYMENT_ASSET,
    NAMESPACED_ASSETS,
    PHASE_READY,
    SERVING_CERT_SECRET_HASH_ANNOTATION,
    VALIDATING_WEBHOOK_ASSETS,
)
from ..errors import ConfigurationError
from ..models import OwnerReference, WardenConfigSpec
from ..settings import settings
from ..utils.apply import ResourceApplier
from ..utils.assets import load_asset, load_assets
from ..utils.certificates import (
    AggregatorCASource,
    CertificateSource,
    DeploymentCertAnnotator,
    inject_trust_bundle,
)
from ..utils.environment import EnvironmentDetector
from .base_reconciler import BaseReconciler, StatusProtocol


class AdmissionReconciler(BaseReconciler):
    """
    Reconciler for the admission subsystem described by a WardenConfig.

    Collaborators can be injected for testing; by default they share the
    reconciler's Kubernetes client.
    """

    def __init__(
        self,
        k8s_client: client.ApiClient | None = None,
        detector: EnvironmentDetector | None = None,
        certificate_source: CertificateSource | None = None,
        annotator: DeploymentCertAnnotator | None = None,
        applier: ResourceApplier | None = None,
        aggregator_ca_source: AggregatorCASource | None = None,
    ):
        super().__init__(k8s_client)
        self._detector = detector
        self._certificate_source = certificate_source
        self._annotator = annotator
        self._applier = applier
        self._aggregator_ca_source = aggregator_ca_source

    @property
    def detector(self) -> EnvironmentDetector:
        if self._detector is None:
            self._detector = EnvironmentDetector(self.kubernetes_client)
        return self._detector

    @property
    def certificate_source(self) -> CertificateSource:
        if self._certificate_source is None:
            self._certificate_source = CertificateSource(self.kubernetes_client)
        return self._certificate_source

    @property
    def annotator(self) -> DeploymentCertAnnotator:
        if self._annotator is None:
            self._annotator = DeploymentCertAnnotator(self.kubernetes_client)
        return self._annotator

    @property
    def applier(self) -> ResourceApplier:
        if self._applier is None:
            self._applier = ResourceApplier(self.kubernetes_client)
        return self._applier

    @property
    def aggregator_ca_source(self) -> AggregatorCASource:
        if self._aggregator_ca_source is None:
            self._aggregator_ca_source = AggregatorCASource(self.kubernetes_client)
        return self._aggregator_ca_source

    async def do_reconcile(
        self,
        spec: dict[str, Any],
        name: str,
        namespace: str,
        status: StatusProtocol,
        **kwargs,
    ) -> dict[str, Any]:
        """
        Bring the admission subsystem to its desired state in one pass.

        Args:
            spec: WardenConfig specification
            name: WardenConfig name
            namespace: Fallback namespace when the spec sets none (may be empty)
            status: WardenConfig status object
            **kwargs: Additional handler arguments; ``body`` is used as owner

        Returns:
            Status dictionary for the resource
        """
        warden_spec = self._validate_spec(spec)
        target_namespace = warden_spec.resolve_target_namespace(
            namespace or settings.target_namespace
        )

        body = kwargs.get("body")
        owner = OwnerReference.from_body(body) if body else None

        await self.ensure_supporting_assets(target_namespace, owner)

        deployment = load_asset(DEPLOYMENT_ASSET)
        deployment.setdefault("metadata", {})["namespace"] = target_namespace
        api_service = load_asset(API_SERVICE_ASSET)
        api_service.setdefault("spec", {}).setdefault("service", {})[
            "namespace"
        ] = target_namespace
        webhooks = load_assets(VALIDATING_WEBHOOK_ASSETS)

        self._apply_image_overrides(deployment, warden_spec)

        ca_hash = await self.aggregator_ca_source.compute_hash()
        status.aggregatorClientCAHash = ca_hash
        self._annotate(deployment, AGGREGATOR_CLIENT_CA_HASH_ANNOTATION, ca_hash)

        ca_injected = await self.detector.requires_ca_injection()
        if ca_injected:
            trust_bundle = await self.certificate_source.locate_trust_bundle(
                target_namespace
            )
            inject_trust_bundle(api_service, webhooks, [], trust_bundle)

            from ..observability.metrics import metrics_collector

            metrics_collector.record_ca_injection(target_namespace, len(webhooks))
            self.logger.info(
                f"Injected CA bundles into APIService and {len(webhooks)} webhook configurations"
            )

        error = await self.annotator.stamp_serving_cert_fingerprint(
            deployment, target_namespace, ADMISSION_SERVING_CERT_SECRET_NAME
        )
        if error is not None:
            self.logger.warning(
                f"Serving cert fingerprint not updated, continuing: {error}"
            )

        await self.applier.apply(deployment, owner)
        await self.applier.apply(api_service, owner)
        for webhook in webhooks:
            await self.applier.apply(webhook, owner)

        template_annotations = deployment["spec"]["template"]["metadata"][
            "annotations"
        ]
        return {
            "phase": PHASE_READY,
            "targetNamespace": target_namespace,
            "caInjected": ca_injected,
            "servingCertHash": template_annotations.get(
                SERVING_CERT_SECRET_HASH_ANNOTATION
            ),
            "webhooks": [w["metadata"]["name"] for w in webhooks],
        }

    async def ensure_supporting_assets(
        self, namespace: str, owner: OwnerReference | None
    ) -> None:
        """Apply the service, service account and RBAC the deployment runs with."""
        for manifest in load_assets(NAMESPACED_ASSETS):
            await self.applier.apply_with_namespace_override(manifest, namespace, owner)
        for manifest in load_assets(CLUSTER_ASSETS):
            await self.applier.apply(manifest, owner)
        for manifest in load_assets(CLUSTER_ROLE_BINDING_ASSETS):
            await self.applier.apply_cluster_role_binding_with_subject_override(
                manifest, namespace, owner
            )

    def _validate_spec(self, spec: dict[str, Any]) -> WardenConfigSpec:
        try:
            return WardenConfigSpec.model_validate(spec or {})
        except PydanticValidationError as e:
            raise ConfigurationError(
                f"Invalid WardenConfig specification: {e}",
                user_action="Fix the WardenConfig spec and re-apply it",
            ) from e

    def _apply_image_overrides(
        self, deployment: dict[str, Any], warden_spec: WardenConfigSpec
    ) -> None:
        image = warden_spec.image or settings.admission_image
        pull_policy = (
            warden_spec.image_pull_policy or settings.admission_image_pull_policy
        )
        if not image and not pull_policy:
            return

        containers = deployment["spec"]["template"]["spec"]["containers"]
        if image:
            containers[0]["image"] = image
        if pull_policy:
            containers[0]["imagePullPolicy"] = pull_policy

    @staticmethod
    def _annotate(deployment: dict[str, Any], key: str, value: str) -> None:
        template = deployment.setdefault("spec", {}).setdefault("template", {})
        for metadata in (
            deployment.setdefault("metadata", {}),
            template.setdefault("metadata", {}),
        ):
            annotations = metadata.get("annotations")
            if annotations is None:
                annotations = metadata["annotations"] = {}
            annotations[key] = value
