# Copyright (c) 2026 Pyry Haulos
#
# This software is released under the MIT License.
# https://opensource.org/licenses/MIT

"""AWS Signature Version 4 signing for S3 requests.

Derives the per-request signing key through the four-stage HMAC-SHA256
chain and binds a canonical request to it:

    k_date    = HMAC("AWS4" + secret, date_stamp)
    k_region  = HMAC(k_date, region)
    k_service = HMAC(k_region, "s3")
    k_signing = HMAC(k_service, "aws4_request")
    signature = hex(HMAC(k_signing, string_to_sign))

Every stage is keyed by the raw digest bytes of the previous stage, never
by its hex form.

There is no boto3/botocore dependency.
"""

from __future__ import annotations

import hashlib
import hmac
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime

from oaamonitor.storage.canonical import (
    canonical_headers,
    canonical_request,
    canonical_uri,
)


ALGORITHM = "AWS4-HMAC-SHA256"
SERVICE = "s3"
TERMINATOR = "aws4_request"


@dataclass(frozen=True)
class Credentials:
    """Access key pair used to sign requests.

    The secret is excluded from ``repr`` so it cannot leak through logs
    or tracebacks.
    """

    access_key_id: str
    secret_access_key: str = field(repr=False)


@dataclass(frozen=True)
class SigningTime:
    """Both timestamp forms, derived from a single captured instant.

    Attributes:
        date_stamp: ``YYYYMMDD`` (credential scope).
        amz_date: ``YYYYMMDDThhmmssZ`` (``x-amz-date`` header).
    """

    date_stamp: str
    amz_date: str

    @classmethod
    def from_datetime(cls, now: datetime) -> SigningTime:
        """Build stamps from one instant.

        Naive datetimes are taken to be UTC; aware ones are converted.
        """
        if now.tzinfo is None:
            now = now.replace(tzinfo=UTC)
        else:
            now = now.astimezone(UTC)
        return cls(
            date_stamp=now.strftime("%Y%m%d"),
            amz_date=now.strftime("%Y%m%dT%H%M%SZ"),
        )


@dataclass(frozen=True)
class SigningKeys:
    """The four keys of the derivation chain (32 raw bytes each)."""

    k_date: bytes
    k_region: bytes
    k_service: bytes
    k_signing: bytes


@dataclass(frozen=True)
class SignedRequest:
    """Result of signing one request.

    Attributes:
        headers: Headers to send, including ``Authorization``.
        canonical_request: The exact string that was hashed.
        string_to_sign: The exact string that was signed.
        signed_headers: Semicolon-separated signed header names.
        signature: 64-character lowercase hex signature.
    """

    headers: dict[str, str]
    canonical_request: str
    string_to_sign: str
    signed_headers: str
    signature: str


# ---------------------------------------------------------------------------
# Signing primitives
# ---------------------------------------------------------------------------


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    """HMAC-SHA256 helper returning raw digest bytes."""
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def credential_scope(date_stamp: str, region: str) -> str:
    """Build the credential scope ``date/region/s3/aws4_request``."""
    return f"{date_stamp}/{region}/{SERVICE}/{TERMINATOR}"


def string_to_sign(amz_date: str, scope: str, canonical: str) -> str:
    """Build the SigV4 string to sign.

    Args:
        amz_date: ``YYYYMMDDThhmmssZ`` timestamp.
        scope: Credential scope from :func:`credential_scope`.
        canonical: Canonical request string.

    Returns:
        String to sign.
    """
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            scope,
            hashlib.sha256(canonical.encode("utf-8")).hexdigest(),
        ]
    )


def derive_signing_keys(
    secret_access_key: str,
    date_stamp: str,
    region: str,
    service: str = SERVICE,
) -> SigningKeys:
    """Derive the SigV4 key chain.

    Args:
        secret_access_key: Secret access key.
        date_stamp: Date string (YYYYMMDD).
        region: Region name (``auto`` for most S3-compatible stores).
        service: Service name; always ``s3`` for this client.

    Returns:
        All four derived keys.
    """
    k_date = _hmac_sha256(
        ("AWS4" + secret_access_key).encode("utf-8"), date_stamp
    )
    k_region = _hmac_sha256(k_date, region)
    k_service = _hmac_sha256(k_region, service)
    k_signing = _hmac_sha256(k_service, TERMINATOR)
    return SigningKeys(k_date, k_region, k_service, k_signing)


def signature(signing_key: bytes, to_sign: str) -> str:
    """Compute the hex signature of a string to sign."""
    return hmac.new(
        signing_key, to_sign.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def authorization_header(
    access_key_id: str, scope: str, signed_headers: str, sig: str
) -> str:
    """Format the ``Authorization`` header value."""
    return (
        f"{ALGORITHM} Credential={access_key_id}/{scope}, "
        f"SignedHeaders={signed_headers}, Signature={sig}"
    )


# ---------------------------------------------------------------------------
# Request signing
# ---------------------------------------------------------------------------


def sign_request(
    credentials: Credentials,
    region: str,
    method: str,
    bucket: str,
    key: str,
    host: str,
    payload_hash: str,
    now: datetime,
    extra_headers: Mapping[str, str] | None = None,
) -> SignedRequest:
    """Sign a path-style S3 object request.

    ``host``, ``x-amz-date`` and ``x-amz-content-sha256`` are always set
    and signed; ``extra_headers`` are signed as well.  ``now`` is read
    once, so the date in the scope and the ``x-amz-date`` header cannot
    disagree.

    Args:
        credentials: Access key pair.
        region: Region for the credential scope.
        method: HTTP method.
        bucket: Bucket name.
        key: Object key.
        host: Value of the ``Host`` header (host[:port]).
        payload_hash: Hex SHA-256 of the body.
        now: The single captured signing instant.
        extra_headers: Additional headers to sign and send.

    Returns:
        SignedRequest with the headers to send and the intermediate
        strings.
    """
    stamp = SigningTime.from_datetime(now)

    headers: dict[str, str] = {
        "host": host,
        "x-amz-date": stamp.amz_date,
        "x-amz-content-sha256": payload_hash,
    }
    if extra_headers:
        for name, value in extra_headers.items():
            headers[name.lower()] = value

    canonical = canonical_request(
        method, canonical_uri(bucket, key), "", headers, payload_hash
    )
    _, signed_headers = canonical_headers(headers)

    scope = credential_scope(stamp.date_stamp, region)
    to_sign = string_to_sign(stamp.amz_date, scope, canonical)
    keys = derive_signing_keys(
        credentials.secret_access_key, stamp.date_stamp, region
    )
    sig = signature(keys.k_signing, to_sign)

    headers["authorization"] = authorization_header(
        credentials.access_key_id, scope, signed_headers, sig
    )
    return SignedRequest(
        headers=headers,
        canonical_request=canonical,
        string_to_sign=to_sign,
        signed_headers=signed_headers,
        signature=sig,
    )
