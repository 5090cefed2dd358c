_UNRESERVED = frozenset(
    b"ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789_-~."
)


def _encode(value: str, safe: frozenset[int]) -> str:
    return "".join(
        chr(byte) if byte in safe else f"%{byte:02X}"
        for byte in value.encode("utf-8")
    )


_PATH_SAFE = _UNRESERVED | {ord("/")}


def encode_uri_s3(key: str) -> str:
    """
    Percent-encode an object key for use as a request path.

    Works on the UTF-8 bytes of `key`: unreserved characters and "/" pass
    through, every other byte becomes "%XX". The signer signs the path exactly
    as produced here, so nothing else may re-encode it.
    """
    return _encode(key, _PATH_SAFE)


def encode_query_component(value: str) -> str:
    """Same as `encode_uri_s3` but "/" is escaped too."""
    return _encode(value, _UNRESERVED)
