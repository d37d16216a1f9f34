"""
Utils package - Utility modules for Warden operator functionality.

Contains helper modules for:
- Kubernetes client management and object application
- Bundled manifest loading
- Cluster capability detection
- Trust material discovery, injection and fingerprinting
"""

from warden_operator.utils.fingerprint import compute_data_fingerprint

__all__ = [
    "compute_data_fingerprint",
]
