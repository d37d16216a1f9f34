"""
WardenConfig handlers - Provision the in-cluster admission subsystem.

This module wires the WardenConfig resource into kopf:
- Create, resume and update events run a full reconciliation pass
- A periodic timer re-runs the pass to pick up rotated trust material and
  to finish passes that failed half way

Only the WardenConfig named by the operator settings is acted on; any other
object of the kind is logged and left alone.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any, Protocol, TypedDict, cast

import kopf
from kopf import Meta

from warden_operator.constants import WARDEN_GROUP, WARDEN_PLURAL, WARDEN_VERSION
from warden_operator.services import AdmissionReconciler
from warden_operator.settings import settings


class StatusProtocol(Protocol):
    """Protocol for kopf Status objects that allow dynamic attribute assignment.

    Wrapped by StatusWrapper to allow safe mutation irrespective of kopf internal
    status object semantics.
    """

    def __setattr__(self, name: str, value: Any) -> None: ...  # pragma: no cover
    def __getattr__(self, name: str) -> Any: ...  # pragma: no cover
    def get(self, key: str, default: Any = None) -> Any: ...  # pragma: no cover


class StatusWrapper(MutableMapping[str, Any]):
    """Safe mutable wrapper around kopf patch.status for both item & attribute access."""

    def __init__(self, patch_status: Any):
        object.__setattr__(self, "_patch_status", patch_status)

    def __getitem__(self, key: str) -> Any:
        return self._patch_status[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._patch_status[key] = value

    def __delitem__(self, key: str) -> None:
        if key in self._patch_status:
            del self._patch_status[key]

    def __iter__(self):  # pragma: no cover - trivial
        return iter(self._patch_status)

    def __len__(self) -> int:  # pragma: no cover - trivial
        return len(self._patch_status)

    def __getattr__(self, item: str) -> Any:
        try:
            return self._patch_status[item]
        except KeyError as e:
            raise AttributeError(item) from e

    def __setattr__(self, key: str, value: Any) -> None:
        if key.startswith("_"):
            object.__setattr__(self, key, value)
        else:
            self._patch_status[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._patch_status.get(key, default)


class KopfHandlerKwargs(TypedDict, total=False):
    """Type hints for common kopf handler kwargs."""

    meta: Meta
    body: dict[str, Any]
    logger: Any


logger = logging.getLogger(__name__)


def is_managed_config(name: str) -> bool:
    """Check whether the operator acts on the WardenConfig with this name."""
    if name != settings.config_name:
        logger.info(
            f"Ignoring WardenConfig {name}, only {settings.config_name} is managed",
            extra={"resource_name": name},
        )
        return False
    return True


async def _reconcile(
    spec: dict[str, Any],
    name: str,
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    # Use patch.status for updates instead of wrapping the read-only status dict
    reconciler = AdmissionReconciler()
    status_wrapper = StatusWrapper(patch.status)
    await reconciler.reconcile(
        spec=spec,
        name=name,
        namespace=settings.target_namespace,
        status=cast(StatusProtocol, status_wrapper),
        **kwargs,
    )


@kopf.on.create(WARDEN_PLURAL, group=WARDEN_GROUP, version=WARDEN_VERSION)
@kopf.on.resume(WARDEN_PLURAL, group=WARDEN_GROUP, version=WARDEN_VERSION)
@kopf.on.update(WARDEN_PLURAL, group=WARDEN_GROUP, version=WARDEN_VERSION)
async def ensure_admission_subsystem(
    spec: dict[str, Any],
    name: str,
    namespace: str | None,
    status: StatusProtocol,
    patch: kopf.Patch,
    **kwargs: KopfHandlerKwargs,
) -> None:
    """
    Ensure the admission subsystem matches the WardenConfig.

    Runs on creation, on operator restart (resume) and on every change of
    the WardenConfig. The pass is idempotent, so all three share it.

    Args:
        spec: WardenConfig specification
        name: Name of the WardenConfig
        namespace: Always None, WardenConfig is cluster-scoped
        status: Current status of the resource
        patch: Kopf patch object for modifying the resource

    Returns:
        None to avoid Kopf creating status subpaths
    """
    if not is_managed_config(name):
        return None

    logger.info(f"Ensuring admission subsystem for WardenConfig {name}")
    await _reconcile(spec, name, patch, **kwargs)
    return None


@kopf.timer(
    WARDEN_PLURAL,
    group=WARDEN_GROUP,
    version=WARDEN_VERSION,
    interval=float(settings.resync_interval_seconds),
    initial_delay=float(settings.resync_interval_seconds),
)
async def resync_admission_subsystem(
    spec: dict[str, Any],
    name: str,
    namespace: str | None,
    status: StatusProtocol,
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """
    Periodically re-run reconciliation.

    Service account token secrets and the serving certificate rotate without
    touching the WardenConfig, so no event would otherwise notice them.
    """
    if not is_managed_config(name):
        return None

    logger.debug(f"Resyncing admission subsystem for WardenConfig {name}")
    await _reconcile(spec, name, patch, **kwargs)
    return None
