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
AssertionBuilder component for building certificate-bound JWT client assertions.
"""

import re
import time
import uuid
from collections.abc import Callable

from authlib.jose import JsonWebSignature
from authlib.jose.errors import JoseError
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from coreason_cert_auth.certificate import load_certificate
from coreason_cert_auth.config import CertAuthSettings
from coreason_cert_auth.exceptions import CertificateError, InvalidInputError, SigningError
from coreason_cert_auth.models import AssertionClaims, JWTHeader
from coreason_cert_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)

# GUID, verified domain name, or one of the common/organizations/consumers aliases
TENANT_ID_PATTERN = re.compile(r"[A-Za-z0-9](?:[A-Za-z0-9.-]{0,251}[A-Za-z0-9])?")


def token_endpoint(tenant_id: str, authority: str) -> str:
    """
    Token endpoint of a tenant. Also the `aud` claim of assertions sent to it.

    Args:
        tenant_id: The directory tenant, in GUID or domain-name format.
        authority: The normalized authority URL (see `CertAuthSettings.authority`).

    Returns:
        str: e.g. https://login.microsoftonline.com/<tenant_id>/oauth2/v2.0/token

    Raises:
        InvalidInputError: If the tenant id is not a GUID or domain name.
    """
    if not TENANT_ID_PATTERN.fullmatch(tenant_id):
        raise InvalidInputError(f"Invalid tenant_id '{tenant_id}': expected a GUID or a domain name.")
    return f"{authority}/{tenant_id}/oauth2/v2.0/token"


class AssertionBuilder:
    """
    Builds signed client assertions (RFC 7523) bound to one certificate, one client and one token endpoint.

    Holds only configuration; every `build` call is independent.

    Attributes:
        settings (CertAuthSettings): The algorithm, lifetime and authority to use.
    """

    def __init__(
        self,
        settings: CertAuthSettings | None = None,
        clock: Callable[[], float] = time.time,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        """
        Initialize the AssertionBuilder.

        Args:
            settings: The configuration object. Defaults to `CertAuthSettings()`.
            clock: Source of the current epoch time. Defaults to `time.time`.
            id_factory: Source of `jti` values. Defaults to random UUID4 strings.
        """
        self.settings = settings or CertAuthSettings()
        self._clock = clock
        self._id_factory = id_factory
        self._jws = JsonWebSignature(algorithms=[self.settings.algorithm])

    def build_header(self, certificate_pem: bytes | str) -> JWTHeader:
        """
        Builds the JOSE header from the client certificate.

        Raises:
            CertificateError: If the certificate is missing or malformed.
        """
        info = load_certificate(certificate_pem)
        return JWTHeader(alg=self.settings.algorithm, x5t=info.thumbprint, x5c=[info.body])

    def build_claims(self, tenant_id: str, client_id: str) -> AssertionClaims:
        """
        Builds the assertion claims with a fresh `jti` and a validity window starting now.
        """
        issued_at = int(self._clock())
        return AssertionClaims(
            iss=client_id,
            sub=client_id,
            aud=token_endpoint(tenant_id, self.settings.authority),
            nbf=issued_at,
            exp=issued_at + self.settings.assertion_lifetime,
            jti=self._id_factory(),
        )

    def sign(self, header: JWTHeader, claims: AssertionClaims, private_key_pem: bytes | str) -> str:
        """
        Serializes and signs header and claims into a compact JWS.

        Both segments are base64url encoded without padding, and the signature covers
        `header_b64 + "." + payload_b64`.

        Raises:
            SigningError: If the key cannot be loaded or does not fit the algorithm.
        """
        try:
            token = self._jws.serialize_compact(
                header.model_dump(),
                claims.model_dump_json().encode("utf-8"),
                private_key_pem,
            )
        except (JoseError, ValueError, TypeError) as e:
            raise SigningError(f"Failed to sign client assertion with {header.alg}: {e}") from e
        return token.decode("ascii")

    def build(
        self,
        tenant_id: str,
        client_id: str,
        certificate_pem: bytes | str,
        private_key_pem: bytes | str,
    ) -> str:
        """
        Builds the compact client assertion `header.payload.signature`.

        Emits an OpenTelemetry span `build_client_assertion`.

        Args:
            tenant_id: The directory tenant the assertion is intended for.
            client_id: The application (client) id; becomes `iss` and `sub`.
            certificate_pem: The PEM certificate registered for the application.
            private_key_pem: The PEM private key of that certificate. Never logged.

        Returns:
            str: The compact JWT.

        Raises:
            CertificateError: If the certificate is missing or malformed.
            SigningError: If signing fails.
            InvalidInputError: If the tenant id cannot be used in the token endpoint URL.
        """
        with tracer.start_as_current_span("build_client_assertion") as span:
            span.set_attribute("jwt.alg", self.settings.algorithm)
            try:
                header = self.build_header(certificate_pem)
                claims = self.build_claims(tenant_id, client_id)
                assertion = self.sign(header, claims, private_key_pem)
            except (CertificateError, SigningError, InvalidInputError) as e:
                logger.error(f"Client assertion construction failed: {e}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            logger.debug(f"Built client assertion for client {client_id} (x5t={header.x5t}, exp={claims.exp})")
            span.set_status(Status(StatusCode.OK))
            return assertion
