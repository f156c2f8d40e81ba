# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cert_auth

"""
Certificate normalization and thumbprint computation.

Pure functions: no I/O and no shared state, safe to call from any thread or task.
"""

import base64

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.serialization import Encoding

from coreason_cert_auth.exceptions import MalformedCertificateError, MissingCertificateError
from coreason_cert_auth.models import CertificateInfo

PEM_BEGIN = "-----BEGIN CERTIFICATE-----"
PEM_END = "-----END CERTIFICATE-----"


def _as_bytes(pem: bytes | str) -> bytes:
    if isinstance(pem, str):
        return pem.encode("ascii", errors="replace")
    if isinstance(pem, (bytes, bytearray)):
        return bytes(pem)
    raise MissingCertificateError(f"Certificate must be PEM bytes or str, got {type(pem).__name__}")


def parse_certificate(pem: bytes | str) -> x509.Certificate:
    """
    Parses a PEM encoded X.509 certificate.

    Args:
        pem: The PEM certificate. Only the first certificate of a chain is used.

    Returns:
        The parsed certificate.

    Raises:
        MissingCertificateError: If the input holds no PEM certificate block.
        MalformedCertificateError: If the PEM block is not a valid X.509 certificate.
    """
    data = _as_bytes(pem)
    if PEM_BEGIN.encode("ascii") not in data:
        raise MissingCertificateError("Input does not contain a PEM certificate block.")

    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as e:
        raise MalformedCertificateError(f"Invalid X.509 certificate: {e}") from e


def _der_body(cert: x509.Certificate) -> str:
    canonical = cert.public_bytes(Encoding.PEM).decode("ascii")
    return canonical.replace(PEM_BEGIN, "").replace(PEM_END, "").replace("\r", "").replace("\n", "").strip()


def normalize_certificate(pem: bytes | str) -> str:
    """
    Returns the bare base64 DER body of the certificate: PEM armor and line breaks removed.

    The certificate is re-encoded after parsing, so comments, headers or extra
    whitespace around the original block never leak into the result.
    """
    return _der_body(parse_certificate(pem))


def compute_thumbprint(cert: x509.Certificate) -> str:
    """
    SHA-1 thumbprint of the certificate's DER encoding, base64url encoded without padding (`x5t`).
    """
    digest = cert.fingerprint(hashes.SHA1())  # noqa: S303 - x5t is defined as SHA-1
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def load_certificate(pem: bytes | str) -> CertificateInfo:
    """
    Computes the thumbprint and normalized body of a PEM certificate.

    Args:
        pem: The PEM encoded certificate.

    Returns:
        CertificateInfo: thumbprint (`x5t`) and body (`x5c` entry).

    Raises:
        MissingCertificateError: If the input holds no PEM certificate block.
        MalformedCertificateError: If the PEM block is not a valid X.509 certificate.
    """
    cert = parse_certificate(pem)
    return CertificateInfo(thumbprint=compute_thumbprint(cert), body=_der_body(cert))
