import hashlib


def normalize_endpoint(endpoint: str) -> str:
    """Normalize an endpoint path so equivalent URLs share one quota.

    Drops the query string and fragment, then strips every trailing slash.
    The root path normalizes to ``/``. Applying the function twice yields
    the same result as applying it once.

    Args:
        endpoint: Raw request path, optionally with query/fragment.

    Returns:
        str: Normalized endpoint path.

    Examples:
        >>> normalize_endpoint("/api/simulate/")
        '/api/simulate'
        >>> normalize_endpoint("/api/simulate?x=1")
        '/api/simulate'
        >>> normalize_endpoint("/")
        '/'
    """
    path = endpoint.split("?", 1)[0].split("#", 1)[0]
    path = path.rstrip("/")
    return path or "/"


def build_key(namespace: str, endpoint: str, identity: str) -> str:
    """Compose a storage key as ``<namespace>-<normalizedEndpoint>-<identity>``."""
    return f"{namespace}-{normalize_endpoint(endpoint)}-{identity}"


def hash_identity(identity: str) -> str:
    """Short SHA-256 prefix of an identity, safe to put in logs."""
    return hashlib.sha256(identity.encode()).hexdigest()[:16]
