"""
Token claims decoding

Reads the payload segment of a compact JWT. The signature is not verified:
the token came straight from the token endpoint over TLS and is only inspected
for identity and display fields.
"""

import base64
import binascii
import json

from ..errors import AzureAuthError, ErrorKind
from ..models import TokenClaims


def _b64url_decode(segment: str) -> bytes:
    normalized = segment.replace("+", "-").replace("/", "_")
    padded = normalized + "=" * (-len(normalized) % 4)
    return base64.urlsafe_b64decode(padded)


def decode_token_claims(access_token: str) -> TokenClaims:
    """
    Decode the claims of a JWT access token.

    Args:
        access_token: Compact serialized JWT (``header.payload.signature``)

    Returns:
        Parsed claims record

    Raises:
        AzureAuthError: ``CLAIMS_DECODE_ERROR`` if the token is not a JWT or
            its payload is not a JSON object
    """
    try:
        segments = access_token.split(".")
        if len(segments) < 2:
            raise ValueError("token has no payload segment")
        payload = json.loads(_b64url_decode(segments[1]).decode("utf-8"))
        return TokenClaims.model_validate(payload)
    except (AttributeError, TypeError, ValueError, binascii.Error) as e:
        raise AzureAuthError(ErrorKind.CLAIMS_DECODE_ERROR, original_error=e) from e
