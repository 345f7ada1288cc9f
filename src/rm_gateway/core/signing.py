"""
RSA signing of the gateway's ``&``-joined parameter string.

The signature input is a private wire contract with the gateway: the
parameters appear in a fixed order (never sorted) and any deviation breaks
verification on the server side.
"""

from __future__ import annotations

import base64
from typing import Optional, Sequence

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .errors import SigningError

__all__ = [
    "SIGN_TYPE",
    "build_sign_params",
    "join_params",
    "load_private_key",
    "load_public_key",
    "sign_data",
    "verify_signature",
]

SIGN_TYPE = "sha256"

_HASHES = {
    "sha1": hashes.SHA1,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}


def _hash_for(algorithm: str) -> hashes.HashAlgorithm:
    try:
        return _HASHES[algorithm.lower()]()
    except KeyError as exc:
        raise SigningError(f"unsupported hash algorithm '{algorithm}'") from exc


def load_private_key(pem: bytes | str) -> rsa.RSAPrivateKey:
    """
    Parse a PEM encoded RSA private key (PKCS#1 or PKCS#8).

    Raises :class:`ValueError` when the material is not an unencrypted RSA key.
    """
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_private_key(data, password=None)
    except (TypeError, ValueError, UnsupportedAlgorithm) as exc:
        raise ValueError(f"invalid format of private key: {exc}") from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        raise ValueError("private key must be an RSA key")
    return key


def load_public_key(pem: bytes | str) -> rsa.RSAPublicKey:
    data = pem.encode("utf-8") if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_public_key(data)
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise ValueError(f"invalid format of public key: {exc}") from exc
    if not isinstance(key, rsa.RSAPublicKey):
        raise ValueError("public key must be an RSA key")
    return key


def build_sign_params(
    *,
    method: str,
    nonce: str,
    request_url: str,
    timestamp: str,
    data: Optional[str] = None,
    sign_type: str = SIGN_TYPE,
) -> list[str]:
    """
    Assemble the signing material in the order the gateway expects.

    ``data`` is the base64 canonical body and is left out entirely when the
    request has no body.
    """
    params: list[str] = []
    if data:
        params.append("data=" + data)
    params.append("method=" + method.strip().lower())
    params.append("nonceStr=" + nonce)
    params.append("requestUrl=" + request_url)
    params.append("signType=" + sign_type)
    params.append("timestamp=" + timestamp)
    return params


def join_params(params: Sequence[str]) -> bytes:
    return "&".join(params).encode("utf-8")


def sign_data(
    params: Sequence[str],
    private_key: rsa.RSAPrivateKey,
    algorithm: str = SIGN_TYPE,
) -> str:
    """Sign ``params`` with RSASSA-PKCS1-v1_5 and return standard base64."""
    digest = _hash_for(algorithm)
    try:
        signature = private_key.sign(join_params(params), padding.PKCS1v15(), digest)
    except (AttributeError, TypeError, ValueError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"rm: unable to sign request: {exc}") from exc
    return base64.b64encode(signature).decode("ascii")


def verify_signature(
    params: Sequence[str],
    signature: str,
    public_key: rsa.RSAPublicKey,
    algorithm: str = SIGN_TYPE,
) -> bool:
    """Return ``True`` when ``signature`` matches ``params`` under ``public_key``."""
    digest = _hash_for(algorithm)
    try:
        raw = base64.b64decode(signature, validate=True)
    except ValueError:
        return False
    try:
        public_key.verify(raw, join_params(params), padding.PKCS1v15(), digest)
    except InvalidSignature:
        return False
    return True
