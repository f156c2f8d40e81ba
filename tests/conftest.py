# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/coreason_cert_auth

import datetime
import json
import threading
from collections.abc import Callable, Generator
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

import httpx
import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.x509.oid import NameOID

from coreason_cert_auth.config import CertAuthSettings

TENANT_ID = "72f988bf-86f1-41af-91ab-2d7cd011db47"
CLIENT_ID = "064b969a-ed15-42fa-9044-f08081163a67"
SCOPE = "https://graph.microsoft.com/.default"

TOKEN_BODY = {"token_type": "Bearer", "expires_in": 3599, "ext_expires_in": 3599, "access_token": "abc"}


@dataclass(frozen=True)
class CertBundle:
    private_key_pem: bytes
    certificate_pem: bytes
    public_key_pem: bytes
    certificate: x509.Certificate


def _self_signed(key: rsa.RSAPrivateKey, common_name: str) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .sign(key, hashes.SHA256())
    )


def _bundle(common_name: str) -> CertBundle:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    cert = _self_signed(key, common_name)
    return CertBundle(
        private_key_pem=key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
        certificate_pem=cert.public_bytes(serialization.Encoding.PEM),
        public_key_pem=key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ),
        certificate=cert,
    )


@pytest.fixture(scope="session")
def cert_bundle() -> CertBundle:
    return _bundle("coreason-cert-auth-test")


@pytest.fixture(scope="session")
def other_cert_bundle() -> CertBundle:
    return _bundle("coreason-cert-auth-other")


@pytest.fixture(scope="session")
def ec_private_key_pem() -> bytes:
    key = ec.generate_private_key(ec.SECP256R1())
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )


@pytest.fixture
def settings() -> CertAuthSettings:
    return CertAuthSettings()


class StubTokenEndpoint:
    """
    Records requests and answers them with a canned response, for use with httpx.MockTransport.
    """

    def __init__(self, responder: Callable[[httpx.Request], httpx.Response]) -> None:
        self.responder = responder
        self.requests: list[httpx.Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


def json_responder(body: Any, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=json.dumps(body).encode("utf-8"), request=request)

    return respond


def text_responder(text: str, status_code: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    def respond(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, content=text.encode("utf-8"), request=request)

    return respond


@pytest.fixture
def token_endpoint_stub() -> StubTokenEndpoint:
    return StubTokenEndpoint(json_responder(TOKEN_BODY))


class _KeepAliveTokenHandler(BaseHTTPRequestHandler):
    """Answers every POST with TOKEN_BODY over a persistent HTTP/1.1 connection."""

    protocol_version = "HTTP/1.1"

    def do_POST(self) -> None:
        self.rfile.read(int(self.headers.get("Content-Length", "0")))
        body = json.dumps(TOKEN_BODY).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args: Any) -> None:
        pass


@pytest.fixture
def loopback_token_endpoint(monkeypatch: pytest.MonkeyPatch) -> Generator[str, None, None]:
    """
    A real token endpoint on 127.0.0.1, so connections are actually pooled by httpx.
    Yields its authority URL.
    """
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)

    server = ThreadingHTTPServer(("127.0.0.1", 0), _KeepAliveTokenHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()
