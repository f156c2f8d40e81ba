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
ClientCredentialsClient component orchestrating assertion building and token exchange.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import anyio
import httpx
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor

from coreason_cert_auth.assertion import AssertionBuilder
from coreason_cert_auth.config import CertAuthSettings
from coreason_cert_auth.exceptions import CertAuthError, InvalidInputError
from coreason_cert_auth.exchanger import TokenExchanger
from coreason_cert_auth.models import AccessTokenResponse, TokenResult


def read_pem(path: str | Path) -> bytes:
    """
    Reads PEM material (certificate or private key) from disk.
    """
    return Path(path).read_bytes()


def _require(name: str, value: str) -> None:
    if not value or not value.strip():
        raise InvalidInputError(f"{name} must be a non-empty string.")


class ClientCredentialsClientAsync:
    """
    Async implementation of the certificate-based client credentials flow (The Core).
    Handles resources via async context manager.
    """

    def __init__(self, settings: CertAuthSettings | None = None, client: httpx.AsyncClient | None = None) -> None:
        """
        Initialize the ClientCredentialsClientAsync.

        Args:
            settings: The configuration object. Defaults to `CertAuthSettings()` (environment driven).
            client: External async client (optional). If not provided, one is created and owned by this instance.
        """
        self.settings = settings or CertAuthSettings()
        self._internal_client = client is None

        if client:
            self._client = client
        else:
            self._client = httpx.AsyncClient(timeout=self.settings.http_timeout)
            # Instrument the client for distributed tracing
            HTTPXClientInstrumentor().instrument_client(self._client)

        self.builder = AssertionBuilder(self.settings)
        self.exchanger = TokenExchanger(self._client, self.settings)

    async def __aenter__(self) -> "ClientCredentialsClientAsync":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._internal_client:
            await self._client.aclose()

    async def acquire_token(
        self,
        tenant_id: str,
        client_id: str,
        scope: str,
        private_key_pem: bytes | str,
        certificate_pem: bytes | str,
    ) -> AccessTokenResponse:
        """
        Acquires an access token with a certificate-bound client assertion.

        The assertion is built synchronously before the request, so certificate and
        key problems surface without any network call.

        Args:
            tenant_id: The directory tenant, in GUID or domain-name format.
            client_id: The application (client) id.
            scope: The requested scope, e.g. "https://graph.microsoft.com/.default".
            private_key_pem: The PEM private key. Used only for signing.
            certificate_pem: The PEM certificate registered for the application.

        Returns:
            AccessTokenResponse: The token response, to be cached by the caller if desired.

        Raises:
            InvalidInputError: If tenant_id or client_id is blank, or tenant_id is not a GUID or domain name.
            CertificateError: If the certificate is missing or malformed.
            SigningError: If the assertion cannot be signed.
            TransportError: If the request fails at the network level.
            ResponseDecodeError: If the response is not a token response (includes TokenEndpointError).
        """
        _require("tenant_id", tenant_id)
        _require("client_id", client_id)

        assertion = self.builder.build(tenant_id, client_id, certificate_pem, private_key_pem)
        return await self.exchanger.exchange(tenant_id, client_id, scope, assertion)

    async def acquire_token_result(
        self,
        tenant_id: str,
        client_id: str,
        scope: str,
        private_key_pem: bytes | str,
        certificate_pem: bytes | str,
    ) -> TokenResult:
        """
        Same as `acquire_token`, but library errors are returned in the result instead of raised.
        """
        try:
            token = await self.acquire_token(tenant_id, client_id, scope, private_key_pem, certificate_pem)
        except CertAuthError as e:
            return TokenResult(error=e)
        return TokenResult(token=token)


class ClientCredentialsClient:
    """
    Sync facade for ClientCredentialsClientAsync.

    Each call runs in its own event loop via `anyio.run`. An httpx connection pool
    is bound to the loop that opened it, so every call gets a fresh async client
    that is closed before its loop ends. No client outlives a call.
    """

    def __init__(
        self,
        settings: CertAuthSettings | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        """
        Initialize the ClientCredentialsClient facade.

        Args:
            settings: The configuration object. Defaults to `CertAuthSettings()`.
            client_factory: Builds the async client for one call (optional). The facade
                closes every client it gets from the factory. Defaults to an instrumented
                client created by `ClientCredentialsClientAsync`.
        """
        self.settings = settings or CertAuthSettings()
        self._client_factory = client_factory

    def __enter__(self) -> "ClientCredentialsClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        pass

    async def _call(self, method: str, *args: Any) -> Any:
        if self._client_factory is None:
            async with ClientCredentialsClientAsync(self.settings) as core:
                return await getattr(core, method)(*args)

        async with self._client_factory() as client:
            core = ClientCredentialsClientAsync(self.settings, client=client)
            return await getattr(core, method)(*args)

    def acquire_token(
        self,
        tenant_id: str,
        client_id: str,
        scope: str,
        private_key_pem: bytes | str,
        certificate_pem: bytes | str,
    ) -> AccessTokenResponse:
        """
        Acquires an access token. See `ClientCredentialsClientAsync.acquire_token`.
        """
        result: AccessTokenResponse = anyio.run(
            self._call, "acquire_token", tenant_id, client_id, scope, private_key_pem, certificate_pem
        )
        return result

    def acquire_token_result(
        self,
        tenant_id: str,
        client_id: str,
        scope: str,
        private_key_pem: bytes | str,
        certificate_pem: bytes | str,
    ) -> TokenResult:
        result: TokenResult = anyio.run(
            self._call, "acquire_token_result", tenant_id, client_id, scope, private_key_pem, certificate_pem
        )
        return result


async def acquire_token(
    tenant_id: str,
    client_id: str,
    scope: str,
    private_key_pem: bytes | str,
    certificate_pem: bytes | str,
    settings: CertAuthSettings | None = None,
) -> AccessTokenResponse:
    """
    One-shot token acquisition with a transient HTTP client.
    """
    async with ClientCredentialsClientAsync(settings) as cca:
        return await cca.acquire_token(tenant_id, client_id, scope, private_key_pem, certificate_pem)
