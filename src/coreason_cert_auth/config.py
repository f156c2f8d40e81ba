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
Configuration for the coreason-cert-auth package.
"""

from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

JWT_BEARER_ASSERTION_TYPE = "urn:ietf:params:oauth:client-assertion-type:jwt-bearer"
DEFAULT_AUTHORITY = "https://login.microsoftonline.com"
DEFAULT_SCOPE_PREFIX = "openid profile offline_access"
RSA_ALGORITHMS = frozenset({"RS256", "RS384", "RS512", "PS256", "PS384", "PS512"})


class CertAuthSettings(BaseSettings):
    """
    Configuration settings for coreason-cert-auth.

    Attributes:
        authority (str): Base URL of the identity provider (e.g. https://login.microsoftonline.com).
        algorithm (str): JWS algorithm used to sign the client assertion.
        assertion_lifetime (int): Seconds between `nbf` and `exp` of the client assertion.
        scope_prefix (str): Scopes always requested ahead of the caller's scope.
        client_assertion_type (str): Value of the `client_assertion_type` form field.
        http_timeout (float): Timeout in seconds for the token request.
        max_response_bytes (int): Upper bound on the token endpoint response body.
        unsafe_local_dev (bool): Allow a plain http authority (local stub endpoints only).
    """

    model_config = SettingsConfigDict(
        env_prefix="COREASON_CERT_AUTH_",
        case_sensitive=False,
    )

    authority: str = DEFAULT_AUTHORITY
    algorithm: str = "RS256"
    assertion_lifetime: int = Field(default=600, gt=0)
    scope_prefix: str = DEFAULT_SCOPE_PREFIX
    client_assertion_type: str = JWT_BEARER_ASSERTION_TYPE
    http_timeout: float = Field(default=30.0, gt=0, description="Timeout in seconds for the token request.")
    max_response_bytes: int = Field(default=1_000_000, gt=0)
    unsafe_local_dev: bool = False

    @field_validator("authority")
    @classmethod
    def normalize_authority(cls, v: str) -> str:
        """
        Ensures the authority is `scheme://host[:port]` with no path or trailing slash.

        Args:
            v: The authority string to normalize.

        Returns:
            The normalized authority URL.
        """
        v = v.strip().lower()
        if "://" not in v:
            v = f"https://{v}"

        parsed = urlparse(v)
        if not parsed.netloc:
            raise ValueError(f"Invalid authority: '{v}'")
        return f"{parsed.scheme}://{parsed.netloc}"

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in RSA_ALGORITHMS:
            supported = ", ".join(sorted(RSA_ALGORITHMS))
            raise ValueError(f"Unsupported assertion algorithm '{v}'. An RSA algorithm is required: {supported}.")
        return v

    @model_validator(mode="after")
    def validate_https(self) -> "CertAuthSettings":
        """
        Ensures that the authority uses HTTPS, unless strictly opted out for local dev.
        """
        if self.authority.startswith("http://") and not self.unsafe_local_dev:
            raise ValueError("HTTPS is required for production. Set 'unsafe_local_dev=True' only for local testing.")
        return self
