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
Data models for the coreason-cert-auth package.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator, model_validator

from coreason_cert_auth.exceptions import CertAuthError


class CertificateInfo(BaseModel):
    """
    The parts of a client certificate embedded in the assertion header.

    Attributes:
        thumbprint (str): base64url SHA-1 digest of the DER certificate (`x5t`).
        body (str): Standard base64 DER certificate without PEM armor (`x5c` entry).
    """

    model_config = ConfigDict(frozen=True)

    thumbprint: str
    body: str


class JWTHeader(BaseModel):
    """
    JOSE header of the client assertion. Field order is the serialization order.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    alg: str = Field(..., description="Signature algorithm, e.g. RS256.")
    x5t: str = Field(..., min_length=1, description="Certificate thumbprint used by the verifier to select the key.")
    x5c: list[str] = Field(..., min_length=1, max_length=1, description="The single signing certificate.")


class AssertionClaims(BaseModel):
    """
    Claims of the client assertion.

    `iss` and `sub` are both the client id; `aud` binds the assertion to exactly one token endpoint.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    iss: str
    sub: str
    aud: str
    nbf: int
    exp: int
    jti: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_window(self) -> "AssertionClaims":
        if self.exp <= self.nbf:
            raise ValueError("Assertion expiry must be after its not-before time.")
        return self


class AccessTokenResponse(BaseModel):
    """
    Successful response of the token endpoint.

    Attributes:
        token_type (str): The type of the token (e.g. "Bearer").
        expires_in (int): The lifetime in seconds of the access token.
        ext_expires_in (int): The extended lifetime in seconds of the access token.
        access_token (SecretStr): The opaque bearer token. Protected from logging.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    token_type: str
    expires_in: int
    ext_expires_in: int
    access_token: SecretStr

    @field_validator("access_token")
    @classmethod
    def non_empty_token(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("access_token must not be empty")
        return v


class TokenErrorResponse(BaseModel):
    """
    OAuth2 error payload returned by the token endpoint (RFC 6749 section 5.2).
    Microsoft identity platform adds diagnostics fields, kept when present.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    error: str
    error_description: str | None = None
    error_codes: list[int] = Field(default_factory=list)
    trace_id: str | None = None
    correlation_id: str | None = None
    timestamp: str | None = None


class TokenResult(BaseModel):
    """
    Outcome of a token acquisition returned as a value: exactly one of `token` or `error` is set.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    token: AccessTokenResponse | None = None
    error: CertAuthError | None = None

    @model_validator(mode="after")
    def exactly_one(self) -> "TokenResult":
        if (self.token is None) == (self.error is None):
            raise ValueError("TokenResult requires exactly one of 'token' or 'error'.")
        return self

    @property
    def ok(self) -> bool:
        return self.token is not None

    def unwrap(self) -> AccessTokenResponse:
        """
        Returns the token, or raises the stored error.
        """
        if self.error is not None:
            raise self.error
        # exactly_one guarantees a token here
        return self.token  # type: ignore[return-value]
