"""Content fingerprints used to detect changes in secret-backed material."""

import base64
import hashlib
import json
from collections.abc import Mapping


def compute_data_fingerprint(data: Mapping[str, bytes] | None) -> str:
    """Compute a deterministic fingerprint of a keyed byte-blob mapping.

    The mapping is serialized as canonical JSON (sorted keys, base64 values)
    so that insertion order does not matter and key/value boundaries cannot
    be confused. Used for change detection only: the digest ends up in a
    pod-template annotation to trigger a rollout when the content changes.

    Args:
        data: Mapping of key to raw bytes; None is treated as empty

    Returns:
        64 character hex SHA-256 digest
    """
    normalized = {
        key: base64.b64encode(value).decode("ascii")
        for key, value in (data or {}).items()
    }
    payload = json.dumps(normalized, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
