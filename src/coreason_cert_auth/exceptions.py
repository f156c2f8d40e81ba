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
Custom exceptions for the coreason-cert-auth package.

Every exception carries an `ErrorKind` tag in `.kind` so that callers receiving an
error as a value (see `TokenResult`) can dispatch on it without `isinstance` chains.
"""

from enum import StrEnum


class ErrorKind(StrEnum):
    CERTIFICATE = "certificate"
    SIGNING = "signing"
    TRANSPORT = "transport"
    RESPONSE_DECODE = "response_decode"
    TOKEN_ENDPOINT = "token_endpoint"
    OVERSIZED_RESPONSE = "oversized_response"
    INVALID_INPUT = "invalid_input"


class CertAuthError(Exception):
    """Base exception for all coreason-cert-auth errors."""

    kind: ErrorKind


class InvalidInputError(CertAuthError, ValueError):
    """Raised when a tenant or client identifier is blank or not usable in the token endpoint URL."""

    kind = ErrorKind.INVALID_INPUT


class CertificateError(CertAuthError):
    """
    Raised when the certificate input is not a usable X.509 certificate.
    Always raised before any network call is attempted.
    """

    kind = ErrorKind.CERTIFICATE


class MissingCertificateError(CertificateError):
    """Raised when the input contains no PEM certificate block at all."""


class MalformedCertificateError(CertificateError):
    """Raised when a PEM certificate block is present but does not parse as X.509."""


class SigningError(CertAuthError):
    """Raised when the private key cannot be loaded or cannot sign with the configured algorithm."""

    kind = ErrorKind.SIGNING


class TransportError(CertAuthError):
    """Raised when the token request fails at the network level. Never retried here."""

    kind = ErrorKind.TRANSPORT


class ResponseDecodeError(CertAuthError):
    """
    Raised when the token endpoint response is not a valid access token response.

    Attributes:
        raw_text (str): The response body, verbatim.
        status_code (int | None): The HTTP status of the response.
        cause (Exception | None): The underlying parse error, if any.
    """

    kind = ErrorKind.RESPONSE_DECODE

    def __init__(
        self,
        message: str,
        raw_text: str = "",
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.raw_text = raw_text
        self.status_code = status_code
        self.cause = cause


class TokenEndpointError(ResponseDecodeError):
    """
    Raised when the token endpoint answered with an OAuth2 error payload
    (`{"error": ..., "error_description": ...}`).
    """

    kind = ErrorKind.TOKEN_ENDPOINT

    def __init__(
        self,
        error: str,
        error_description: str | None,
        raw_text: str = "",
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        message = f"Token endpoint returned error '{error}'"
        if error_description:
            message = f"{message}: {error_description}"
        super().__init__(message, raw_text=raw_text, status_code=status_code, cause=cause)
        self.error = error
        self.error_description = error_description


class OversizedResponseError(ResponseDecodeError):
    """Raised when an HTTP response is too large."""

    kind = ErrorKind.OVERSIZED_RESPONSE
