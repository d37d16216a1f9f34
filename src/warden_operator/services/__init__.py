"""
Service layer for the Warden operator.

This module provides reconciler services that handle the business logic
for provisioning the admission subsystem, separated from the kopf handler layer.
"""

from .admission_reconciler import AdmissionReconciler
from .base_reconciler import BaseReconciler

__all__ = [
    "AdmissionReconciler",
    "BaseReconciler",
]
