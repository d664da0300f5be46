"""Unit tests for HttpTransport adapter."""

import httpx
import pytest


URL = "https://data.example.org/data/casualties/2024-Q1.json"


def _transport(handler):
    from timeslab.adapters.transport import HttpTransport

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransport(client=client), client


@pytest.mark.transport
@pytest.mark.tra("Adapter.HttpTransport")
@pytest.mark.tier(1)
class TestGet:
    """Tests for get() method."""

    @pytest.mark.asyncio
    async def test_returns_body(self) -> None:
        """A 200 response returns the full payload."""
        transport, _ = _transport(lambda request: httpx.Response(200, content=b"[1, 2]"))

        assert await transport.get(URL) == b"[1, 2]"

    @pytest.mark.asyncio
    async def test_reports_progress(self) -> None:
        """Progress is reported with the declared content length."""
        payload = b"x" * 1000
        transport, _ = _transport(lambda request: httpx.Response(200, content=payload))
        updates: list[tuple[int, int]] = []

        await transport.get(URL, progress=lambda done, total: updates.append((done, total)))

        assert updates
        assert updates[-1] == (1000, 1000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [404, 410])
    async def test_not_found(self, status: int) -> None:
        """404 and 410 raise TransportNotFoundError."""
        from timeslab.core.exceptions import TransportNotFoundError

        transport, _ = _transport(lambda request: httpx.Response(status))

        with pytest.raises(TransportNotFoundError) as exc_info:
            await transport.get(URL)

        assert exc_info.value.source == URL

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [401, 403])
    async def test_access_denied(self, status: int) -> None:
        """401 and 403 raise TransportAccessError."""
        from timeslab.core.exceptions import TransportAccessError

        transport, _ = _transport(lambda request: httpx.Response(status))

        with pytest.raises(TransportAccessError):
            await transport.get(URL)

    @pytest.mark.asyncio
    async def test_server_error(self) -> None:
        """Other statuses raise a plain TransportError naming the code."""
        from timeslab.core.exceptions import TransportError, TransportNotFoundError

        transport, _ = _transport(lambda request: httpx.Response(502))

        with pytest.raises(TransportError, match="HTTP 502") as exc_info:
            await transport.get(URL)

        assert not isinstance(exc_info.value, TransportNotFoundError)

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        """A timed-out request raises TransportTimeoutError."""
        from timeslab.core.exceptions import TransportTimeoutError

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        transport, _ = _transport(handler)

        with pytest.raises(TransportTimeoutError) as exc_info:
            await transport.get(URL)

        assert isinstance(exc_info.value.cause, httpx.ReadTimeout)

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        """Connection failures raise TransportError."""
        from timeslab.core.exceptions import TransportError

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport, _ = _transport(handler)

        with pytest.raises(TransportError, match="connection refused"):
            await transport.get(URL)


@pytest.mark.transport
@pytest.mark.tra("Adapter.HttpTransport")
@pytest.mark.tier(1)
class TestClose:
    """Tests for client ownership."""

    @pytest.mark.asyncio
    async def test_borrowed_client_is_left_open(self) -> None:
        """aclose() does not close a client passed in by the caller."""
        transport, client = _transport(lambda request: httpx.Response(200))

        await transport.aclose()

        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_is_closed(self) -> None:
        """aclose() closes the client the transport created."""
        from timeslab.adapters.transport import HttpTransport

        transport = HttpTransport(timeout=5.0)

        await transport.aclose()

        assert transport._client.is_closed
