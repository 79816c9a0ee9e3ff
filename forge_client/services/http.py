from collections.abc import Iterator
from contextlib import contextmanager

import httpx


def create_http_client() -> httpx.Client:
    # Chunk PUTs carry up to 100 MiB, so writes get a longer budget than reads.
    return httpx.Client(
        timeout=httpx.Timeout(60.0, write=300.0),
        http2=True,
        limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
    )


@contextmanager
def client_scope(client: httpx.Client | None) -> Iterator[httpx.Client]:
    """Yield the injected client, or a fresh one that is closed on exit."""
    if client is not None:
        yield client
        return
    with create_http_client() as managed_client:
        yield managed_client


def bearer_headers(access_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {access_token}"}
