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
OAuth 2.0 client credentials grant with certificate-bound JWT client assertions.
"""

__version__ = "0.1.0"
__author__ = "Gowtham A Rao"
__email__ = "gowtham.rao@coreason.ai"

from .assertion import AssertionBuilder, token_endpoint
from .certificate import load_certificate
from .client import ClientCredentialsClient, ClientCredentialsClientAsync, acquire_token, read_pem
from .config import CertAuthSettings
from .exceptions import (
    CertAuthError,
    CertificateError,
    ErrorKind,
    InvalidInputError,
    OversizedResponseError,
    ResponseDecodeError,
    SigningError,
    TokenEndpointError,
    TransportError,
)
from .exchanger import TokenExchanger
from .models import AccessTokenResponse, TokenResult

__all__ = [
    "AccessTokenResponse",
    "AssertionBuilder",
    "CertAuthError",
    "CertAuthSettings",
    "CertificateError",
    "ClientCredentialsClient",
    "ClientCredentialsClientAsync",
    "ErrorKind",
    "InvalidInputError",
    "OversizedResponseError",
    "ResponseDecodeError",
    "SigningError",
    "TokenEndpointError",
    "TokenExchanger",
    "TokenResult",
    "TransportError",
    "acquire_token",
    "load_certificate",
    "read_pem",
    "token_endpoint",
]
