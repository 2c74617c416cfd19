from __future__ import annotations
import httpx

INBOX_PATH = "/inbox"


class InboxClient:
    """Async client for a receiver's /inbox and its probe endpoints."""

    def __init__(self, base_url: str, timeout_s: float | None = 2.0, transport: httpx.AsyncBaseTransport | None = None):
        # a timeout of 0 means "wait forever"
        timeout = timeout_s if timeout_s else None
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            # no cap on open connections: a hung receiver must not hold back new sends
            limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
            transport=transport,
        )

    @property
    def inbox_url(self) -> str:
        return str(self._client.base_url.join(INBOX_PATH))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> InboxClient:
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def post_inbox(self) -> httpx.Response:
        # the body is read in full by httpx and discarded by callers
        return await self._client.post(INBOX_PATH)

    async def healthz(self) -> str:
        r = await self._client.get("/healthz")
        r.raise_for_status()
        return r.text

    async def readyz(self) -> str:
        r = await self._client.get("/readyz")
        r.raise_for_status()
        return r.text
