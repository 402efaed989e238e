from __future__ import annotations


def redact_device_ref(ref: str) -> str:
    """Hide credentials embedded in a stream URL."""
    if "://" not in ref:
        return ref
    scheme, rest = ref.split("://", 1)
    if "@" not in rest:
        return ref
    _creds, host = rest.split("@", 1)
    return f"{scheme}://***:***@{host}"
