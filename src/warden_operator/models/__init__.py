"""
Models package - Pydantic models for type-safe resource handling.

Defines data models for:
- WardenConfig specifications
- Cluster capability tiers and trust bundles
"""

from .admission import (
    ApplyResult,
    ClusterCapabilityTier,
    OwnerReference,
    TrustBundle,
    WardenConfigSpec,
)

__all__ = [
    "ApplyResult",
    "ClusterCapabilityTier",
    "OwnerReference",
    "TrustBundle",
    "WardenConfigSpec",
]
