"""App proxy request verification.

The storefront reaches this service through the platform's app proxy, which
appends ``shop``, ``timestamp``, ``path_prefix`` (and ``logged_in_customer_id``)
to the query string and signs it with the app's shared secret:

1. drop the ``signature`` parameter,
2. join repeated parameters' values with ``,``,
3. sort by parameter name and concatenate ``name=value`` with no separator,
4. HMAC-SHA256 the result with the secret, hex encoded.

Only this one canonical form is accepted.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlsplit

from shared.errors import AuthFailure, ProxyAuthError

logger = logging.getLogger(__name__)

SIGNATURE_PARAM = "signature"


@dataclass
class ProxyValidationResult:
    valid: bool
    shop: str | None = None
    reason: AuthFailure | None = None


def _grouped_params(query_string: str) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for key, value in parse_qsl(query_string, keep_blank_values=True):
        grouped.setdefault(key, []).append(value)
    return grouped


def canonical_message(query_string: str) -> str:
    """The string the app proxy signs for *query_string*."""
    grouped = _grouped_params(query_string)
    grouped.pop(SIGNATURE_PARAM, None)
    return "".join(f"{key}={','.join(values)}" for key, values in sorted(grouped.items()))


def compute_signature(query_string: str, secret: str) -> str:
    return hmac.new(
        secret.encode("utf-8"),
        canonical_message(query_string).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def signatures_match(received: str, expected: str) -> bool:
    """Constant-time, case-insensitive hex comparison.

    Lengths are compared first; ``compare_digest`` only sees equal-length input.
    """
    received_bytes = received.strip().lower().encode("utf-8")
    expected_bytes = expected.lower().encode("utf-8")
    if len(received_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(received_bytes, expected_bytes)


def verify_proxy_request(
    url: str, query_string: str | None, secret: str | None
) -> ProxyValidationResult:
    """Check the app proxy signature of a request.

    *query_string* is the raw (still percent-encoded) query; when ``None`` it is
    taken from *url*.
    """
    if query_string is None:
        query_string = urlsplit(url).query

    params = _grouped_params(query_string)

    if SIGNATURE_PARAM not in params:
        return ProxyValidationResult(valid=False, reason=AuthFailure.MISSING_SIGNATURE)
    signature = params[SIGNATURE_PARAM][0]

    shop = (params.get("shop") or [""])[0].strip()
    if not shop:
        return ProxyValidationResult(valid=False, reason=AuthFailure.MISSING_SHOP)

    if not secret:
        return ProxyValidationResult(valid=False, shop=shop, reason=AuthFailure.SECRET_NOT_CONFIGURED)

    if not signature or not signatures_match(signature, compute_signature(query_string, secret)):
        return ProxyValidationResult(valid=False, shop=shop, reason=AuthFailure.INVALID_SIGNATURE)

    return ProxyValidationResult(valid=True, shop=shop)


class ProxyAuthenticator:
    """Resolves the verified shop of an app proxy request or raises.

    With ``allow_unsigned`` (development only) a request that carries no
    ``signature`` parameter at all is accepted on its ``shop`` parameter.
    A signature that is present but wrong is always rejected.
    """

    def __init__(self, secret: str | None, *, allow_unsigned: bool = False) -> None:
        self.secret = secret
        self.allow_unsigned = allow_unsigned

    def verify(self, url: str, query_string: str | None = None) -> ProxyValidationResult:
        return verify_proxy_request(url, query_string, self.secret)

    def authenticate(self, url: str, query_string: str | None = None) -> str:
        result = self.verify(url, query_string)
        if result.valid and result.shop:
            return result.shop

        if self.allow_unsigned and result.reason is AuthFailure.MISSING_SIGNATURE:
            shop = self._unsigned_shop(url, query_string)
            if shop:
                logger.warning(f"Development mode: accepting unsigned proxy request for {shop}")
                return shop

        reason = result.reason or AuthFailure.INVALID_SIGNATURE
        logger.warning(
            f"App proxy validation failed: {reason.name} "
            f"(shop={result.shop or '-'}, secret_configured={bool(self.secret)})"
        )
        raise ProxyAuthError(reason)

    @staticmethod
    def _unsigned_shop(url: str, query_string: str | None) -> str:
        if query_string is None:
            query_string = urlsplit(url).query
        return (_grouped_params(query_string).get("shop") or [""])[0].strip()
