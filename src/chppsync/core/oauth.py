"""OAuth 1.0a request signing for chppsync.

This module provides:
- Credential value objects (consumer, request token, access token)
- SigningContext: per-request signing material (nonce, timestamp)
- HMAC-SHA1 signature base string and Authorization header construction

Every outbound request needs its own SigningContext. The server rejects a
reused nonce as a replay, so contexts are immutable and never recycled.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass, replace
from urllib.parse import parse_qsl, quote, urlsplit

logger = logging.getLogger(__name__)

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"
NONCE_BYTES = 16

DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class ConsumerCredentials:
    """Consumer key/secret issued by the API provider."""

    key: str
    secret: str


@dataclass(frozen=True)
class RequestToken:
    """Temporary token returned by the first handshake leg."""

    token: str
    secret: str


@dataclass(frozen=True)
class AccessToken:
    """Long-lived token used to sign every data request."""

    token: str
    secret: str


@dataclass(frozen=True)
class SigningContext:
    """Signing material for exactly one request.

    Attributes:
        consumer: Consumer credentials.
        token: Request or access token (None during the request-token leg).
        nonce: Single-use random value.
        timestamp: Seconds since epoch, as a string.
        signature_method: Always HMAC-SHA1.
        callback: oauth_callback (request-token leg only).
        verifier: oauth_verifier (access-token leg only).
    """

    consumer: ConsumerCredentials
    token: AccessToken | RequestToken | None
    nonce: str
    timestamp: str
    signature_method: str = SIGNATURE_METHOD
    callback: str | None = None
    verifier: str | None = None

    @classmethod
    def create(
        cls,
        consumer: ConsumerCredentials,
        token: AccessToken | RequestToken | None = None,
    ) -> SigningContext:
        """Build a context with a fresh nonce and the current timestamp."""
        return cls(
            consumer=consumer,
            token=token,
            nonce=generate_nonce(),
            timestamp=generate_timestamp(),
        )

    def with_token(self, token: AccessToken | RequestToken) -> SigningContext:
        """Return a copy bound to the given token."""
        return replace(self, token=token)

    def with_callback(self, callback: str) -> SigningContext:
        """Return a copy carrying an oauth_callback."""
        return replace(self, callback=callback)

    def with_verifier(self, verifier: str) -> SigningContext:
        """Return a copy carrying an oauth_verifier."""
        return replace(self, verifier=verifier)


def generate_nonce() -> str:
    """Generate a cryptographically secure nonce.

    Returns:
        32 hexadecimal characters.
    """
    return secrets.token_hex(NONCE_BYTES)


def generate_timestamp() -> str:
    """Current time in whole seconds since the epoch."""
    return str(int(time.time()))


def percent_encode(value: str) -> str:
    """Percent-encode a value as required by RFC 5849 section 3.6.

    Only unreserved characters (ALPHA, DIGIT, '-', '.', '_', '~') are kept.
    """
    return quote(str(value).encode("utf-8"), safe="-._~")


def normalize_url(url: str) -> str:
    """Normalize a URL for the signature base string.

    Scheme and host are lowercased, default ports dropped, query and
    fragment removed.

    Raises:
        ValueError: If the URL has no scheme or host.
    """
    parts = urlsplit(url)
    if not parts.scheme or not parts.hostname:
        raise ValueError(f"Cannot sign malformed URL: {url!r}")

    scheme = parts.scheme.lower()
    host = parts.hostname.lower()
    if parts.port and parts.port != DEFAULT_PORTS.get(scheme):
        host = f"{host}:{parts.port}"
    path = parts.path or "/"
    return f"{scheme}://{host}{path}"


def oauth_parameters(context: SigningContext) -> dict[str, str]:
    """Collect the oauth_* protocol parameters for a context."""
    params = {
        "oauth_consumer_key": context.consumer.key,
        "oauth_nonce": context.nonce,
        "oauth_signature_method": context.signature_method,
        "oauth_timestamp": context.timestamp,
        "oauth_version": OAUTH_VERSION,
    }
    if context.token is not None:
        params["oauth_token"] = context.token.token
    if context.callback is not None:
        params["oauth_callback"] = context.callback
    if context.verifier is not None:
        params["oauth_verifier"] = context.verifier
    return params


def normalize_parameters(parameters: list[tuple[str, str]]) -> str:
    """Encode, sort and join request parameters."""
    encoded = sorted(
        (percent_encode(key), percent_encode(value)) for key, value in parameters
    )
    return "&".join(f"{key}={value}" for key, value in encoded)


def signature_base_string(
    method: str,
    url: str,
    parameters: list[tuple[str, str]],
) -> str:
    """Build the signature base string.

    Args:
        method: HTTP method (uppercased here).
        url: Request URL; any query string is ignored (pass it in parameters).
        parameters: All OAuth and endpoint parameters.

    Returns:
        METHOD&encoded-url&encoded-parameters
    """
    return "&".join(
        [
            method.upper(),
            percent_encode(normalize_url(url)),
            percent_encode(normalize_parameters(parameters)),
        ]
    )


def signing_key(context: SigningContext) -> str:
    """HMAC key: encoded consumer secret and token secret joined by '&'."""
    token_secret = context.token.secret if context.token is not None else ""
    return f"{percent_encode(context.consumer.secret)}&{percent_encode(token_secret)}"


def compute_signature(base_string: str, key: str) -> str:
    """Base64-encoded HMAC-SHA1 digest of the base string."""
    digest = hmac.new(
        key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def sign(
    method: str,
    url: str,
    parameters: dict[str, str] | None,
    context: SigningContext,
) -> str:
    """Sign a request and build its Authorization header value.

    Pure function of its inputs: freshness comes from the caller building a
    new SigningContext per request.

    Args:
        method: HTTP method.
        url: Request URL. Query parameters on it are included in the signature.
        parameters: Endpoint-specific parameters (query or form).
        context: Signing material for this request.

    Returns:
        Value for the Authorization header, e.g. 'OAuth oauth_consumer_key="..", ...'.
    """
    protocol_params = oauth_parameters(context)

    all_params: list[tuple[str, str]] = list(protocol_params.items())
    all_params.extend(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    if parameters:
        all_params.extend((key, str(value)) for key, value in parameters.items())

    base_string = signature_base_string(method, url, all_params)
    logger.debug(f"Signature base string: {base_string}")
    protocol_params["oauth_signature"] = compute_signature(
        base_string, signing_key(context)
    )

    header_params = ", ".join(
        f'{percent_encode(key)}="{percent_encode(value)}"'
        for key, value in sorted(protocol_params.items())
    )
    return f"OAuth {header_params}"
