"""COS request signing.

Produces the value of the Authorization header for a single request.
Every step must match the server-side verification byte for byte:

    sign_time      = "{now};{now + 60}"
    sign_key       = hex(HMAC-SHA1(secret_key, sign_time))
    canonical      = "{method}\\n{path}\\n\\n{k1=v1&k2=v2}\\n"
    string_to_sign = "sha1\\n{sign_time}\\n{hex(SHA1(canonical))}\\n"
    signature      = hex(HMAC-SHA1(sign_key, string_to_sign))
"""

import hashlib
import hmac
import time
from collections.abc import Mapping
from urllib.parse import quote

from qcloud_storage.core.errors import ConfigurationError

SIGN_ALGORITHM = "sha1"

# Validity window of a signature, in seconds
SIGNATURE_TTL_SECONDS = 60


def _hmac_sha1(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha1).hexdigest()


def _encode(value: str) -> str:
    return quote(value, safe="")


def canonical_headers(headers: Mapping[str, str]) -> list[tuple[str, str]]:
    """Lower-case names, URL-encode values and sort by name."""
    return sorted((str(name).lower(), _encode(str(value))) for name, value in headers.items())


def build_canonical_request(
    method: str,
    url_path: str,
    headers: Mapping[str, str],
) -> str:
    """Build the canonical request string that gets hashed."""
    header_string = "&".join(f"{name}={value}" for name, value in canonical_headers(headers))
    return f"{method.lower()}\n{url_path}\n\n{header_string}\n"


def sign(
    method: str,
    url_path: str,
    headers: Mapping[str, str],
    secret_id: str,
    secret_key: str,
    now: int | None = None,
) -> str:
    """Compute the Authorization value for a request.

    Args:
        method: HTTP method (any case)
        url_path: Request path starting with "/"
        headers: Headers that will be sent and covered by the signature
        secret_id: API secret id
        secret_key: API secret key
        now: Signing time as Unix seconds (default: current time)

    Returns:
        q-sign-algorithm=sha1&q-ak=...&q-signature=... token

    Raises:
        ConfigurationError: If the secret id or key is missing
    """
    if not secret_id:
        raise ConfigurationError("Cannot sign a request without a secret id")
    if not secret_key:
        raise ConfigurationError("Cannot sign a request without a secret key")

    if now is None:
        now = int(time.time())
    sign_time = f"{now};{now + SIGNATURE_TTL_SECONDS}"

    sign_key = _hmac_sha1(secret_key, sign_time)
    canonical = build_canonical_request(method, url_path, headers)
    hashed_request = hashlib.sha1(canonical.encode("utf-8")).hexdigest()
    string_to_sign = f"{SIGN_ALGORITHM}\n{sign_time}\n{hashed_request}\n"
    signature = _hmac_sha1(sign_key, string_to_sign)

    header_list = ";".join(name for name, _ in canonical_headers(headers))

    # Field order is significant for the server
    return (
        f"q-sign-algorithm={SIGN_ALGORITHM}"
        f"&q-ak={secret_id}"
        f"&q-sign-time={sign_time}"
        f"&q-key-time={sign_time}"
        f"&q-header-list={header_list}"
        f"&q-url-param-list="
        f"&q-signature={signature}"
    )
