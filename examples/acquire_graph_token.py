import contextlib
import os
import sys

import anyio

from coreason_cert_auth import ClientCredentialsClientAsync, ResponseDecodeError, TransportError, read_pem


async def main() -> None:
    """
    Acquires a Microsoft Graph token with a certificate-bound client assertion.

    Expects:
    - AZURE_TENANT_ID, AZURE_CLIENT_ID
    - AZURE_CLIENT_CERTIFICATE (PEM certificate path) and AZURE_CLIENT_KEY (PEM private key path)
    """
    tenant_id = os.environ["AZURE_TENANT_ID"]
    client_id = os.environ["AZURE_CLIENT_ID"]
    certificate_pem = read_pem(os.environ["AZURE_CLIENT_CERTIFICATE"])
    private_key_pem = read_pem(os.environ["AZURE_CLIENT_KEY"])

    async with ClientCredentialsClientAsync() as cca:
        try:
            token = await cca.acquire_token(
                tenant_id,
                client_id,
                "https://graph.microsoft.com/.default",
                private_key_pem,
                certificate_pem,
            )
        except ResponseDecodeError as e:
            print(f">>> Token endpoint answered HTTP {e.status_code}: {e.raw_text}", file=sys.stderr)
            raise SystemExit(1) from e
        except TransportError as e:
            print(f">>> Network failure: {e}", file=sys.stderr)
            raise SystemExit(1) from e

    print(f">>> {token.token_type} token acquired, expires in {token.expires_in}s")


if __name__ == "__main__":
    with contextlib.suppress(KeyboardInterrupt):
        anyio.run(main)
