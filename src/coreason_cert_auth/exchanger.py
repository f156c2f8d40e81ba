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
TokenExchanger component for the OAuth 2.0 client credentials grant with a client assertion.
"""

import httpx
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
from pydantic import ValidationError

from coreason_cert_auth.assertion import token_endpoint
from coreason_cert_auth.config import CertAuthSettings
from coreason_cert_auth.exceptions import (
    CertAuthError,
    OversizedResponseError,
    ResponseDecodeError,
    TokenEndpointError,
    TransportError,
)
from coreason_cert_auth.models import AccessTokenResponse, TokenErrorResponse
from coreason_cert_auth.utils.logger import logger

tracer = trace.get_tracer(__name__)


class TokenExchanger:
    """
    Exchanges a client assertion for an access token (RFC 6749 section 4.4, RFC 7521).

    Issues exactly one POST per call. No retry, no caching, no token validation.

    Attributes:
        client (httpx.AsyncClient): The async HTTP client used for the request.
        settings (CertAuthSettings): Authority, scope prefix and response limits.
    """

    def __init__(self, client: httpx.AsyncClient, settings: CertAuthSettings | None = None) -> None:
        """
        Initialize the TokenExchanger.

        Args:
            client: The async HTTP client to use for requests.
            settings: The configuration object. Defaults to `CertAuthSettings()`.
        """
        self.client = client
        self.settings = settings or CertAuthSettings()

    def token_url(self, tenant_id: str) -> str:
        return token_endpoint(tenant_id, self.settings.authority)

    def build_form(self, client_id: str, scope: str, assertion: str) -> dict[str, str]:
        """
        Builds the form-encoded body of the token request.

        The configured scope prefix is always requested ahead of the caller's scope.
        """
        full_scope = " ".join(part for part in (self.settings.scope_prefix, scope) if part)
        return {
            "client_assertion_type": self.settings.client_assertion_type,
            "grant_type": "client_credentials",
            "scope": full_scope,
            "client_assertion": assertion,
            "client_id": client_id,
        }

    async def _post(self, url: str, form: dict[str, str]) -> tuple[int, str]:
        """
        Sends the request and reads the whole body, whatever the status code.

        Raises:
            TransportError: On network level failures.
            OversizedResponseError: If the body exceeds `max_response_bytes`.
        """
        limit = self.settings.max_response_bytes
        try:
            async with self.client.stream("POST", url, data=form) as response:
                content_length = response.headers.get("Content-Length")
                if content_length and content_length.isdigit() and int(content_length) > limit:
                    raise OversizedResponseError(
                        f"Token response too large ({content_length} bytes)", status_code=response.status_code
                    )

                content = bytearray()
                async for chunk in response.aiter_bytes():
                    content.extend(chunk)
                    if len(content) > limit:
                        raise OversizedResponseError(
                            f"Token response exceeded {limit} bytes", status_code=response.status_code
                        )
                return response.status_code, content.decode("utf-8", errors="replace")
        except httpx.RequestError as e:
            logger.error(f"Token request to {url} failed: {e!r}")
            raise TransportError(f"Token request to {url} failed: {e}") from e

    @staticmethod
    def decode_response(status_code: int, body: str) -> AccessTokenResponse:
        """
        Decodes a token endpoint response body.

        Raises:
            TokenEndpointError: If the body is an OAuth2 error payload.
            ResponseDecodeError: If the body is anything else that is not a token response.
        """
        try:
            return AccessTokenResponse.model_validate_json(body)
        except ValidationError as e:
            parse_error = e

        try:
            error_payload = TokenErrorResponse.model_validate_json(body)
        except ValidationError:
            raise ResponseDecodeError(
                f"Failed to decode token response (HTTP {status_code}): {parse_error}",
                raw_text=body,
                status_code=status_code,
                cause=parse_error,
            ) from parse_error

        raise TokenEndpointError(
            error_payload.error,
            error_payload.error_description,
            raw_text=body,
            status_code=status_code,
            cause=parse_error,
        ) from parse_error

    async def exchange(self, tenant_id: str, client_id: str, scope: str, assertion: str) -> AccessTokenResponse:
        """
        Exchanges the client assertion for an access token.

        Emits an OpenTelemetry span `token_exchange`.

        Args:
            tenant_id: The directory tenant; selects the token endpoint.
            client_id: The application (client) id.
            scope: The requested scope, e.g. "https://graph.microsoft.com/.default".
            assertion: The compact client assertion built by `AssertionBuilder`.

        Returns:
            AccessTokenResponse: The decoded token response.

        Raises:
            TransportError: If the request fails at the network level.
            OversizedResponseError: If the response body is too large.
            TokenEndpointError: If the endpoint returned an OAuth2 error payload.
            ResponseDecodeError: If the response is not a token response.
        """
        url = self.token_url(tenant_id)
        form = self.build_form(client_id, scope, assertion)

        with tracer.start_as_current_span("token_exchange") as span:
            span.set_attribute("oauth.tenant_id", tenant_id)
            span.set_attribute("oauth.client_id", client_id)
            try:
                status_code, body = await self._post(url, form)
                span.set_attribute("http.status_code", status_code)
                token = self.decode_response(status_code, body)
            except ResponseDecodeError as e:
                # Diagnostic only, the raw text is kept on the exception
                logger.warning(f"Token response decode failed (HTTP {e.status_code}): {e}. Response text: {e.raw_text}")
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise
            except CertAuthError as e:
                span.record_exception(e)
                span.set_status(Status(StatusCode.ERROR, str(e)))
                raise

            logger.info(f"Access token acquired for client {client_id} (expires_in={token.expires_in}s)")
            span.set_status(Status(StatusCode.OK))
            return token
