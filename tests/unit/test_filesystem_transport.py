"""Unit tests for FilesystemTransport adapter."""

from pathlib import Path

import pytest


@pytest.mark.transport
@pytest.mark.tra("Adapter.FilesystemTransport")
@pytest.mark.tier(1)
class TestGet:
    """Tests for get() method."""

    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path: Path) -> None:
        """get() returns the file's bytes."""
        from timeslab.adapters.transport import FilesystemTransport

        path = tmp_path / "manifest.json"
        path.write_bytes(b'{"dataset": "casualties"}')

        assert await FilesystemTransport().get(str(path)) == b'{"dataset": "casualties"}'

    @pytest.mark.asyncio
    async def test_reports_progress_in_chunks(self, tmp_path: Path) -> None:
        """Large files report progress once per chunk up to the file size."""
        from timeslab.adapters.transport import FilesystemTransport

        path = tmp_path / "big.json"
        path.write_bytes(b"x" * (200 * 1024))
        updates: list[tuple[int, int]] = []

        await FilesystemTransport().get(
            str(path), progress=lambda done, total: updates.append((done, total))
        )

        assert len(updates) == 4
        assert updates[-1] == (200 * 1024, 200 * 1024)

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path: Path) -> None:
        """An empty file reads as empty bytes."""
        from timeslab.adapters.transport import FilesystemTransport

        path = tmp_path / "empty.json"
        path.write_bytes(b"")

        assert await FilesystemTransport().get(str(path)) == b""

    @pytest.mark.asyncio
    async def test_missing_file_raises_not_found(self, tmp_path: Path) -> None:
        """A missing file raises TransportNotFoundError."""
        from timeslab.adapters.transport import FilesystemTransport
        from timeslab.core.exceptions import TransportNotFoundError

        missing = str(tmp_path / "missing.json")

        with pytest.raises(TransportNotFoundError) as exc_info:
            await FilesystemTransport().get(missing)

        assert exc_info.value.source == missing
        assert isinstance(exc_info.value.cause, FileNotFoundError)

    @pytest.mark.asyncio
    async def test_directory_raises_transport_error(self, tmp_path: Path) -> None:
        """Reading a directory raises TransportError."""
        from timeslab.adapters.transport import FilesystemTransport
        from timeslab.core.exceptions import TransportError

        with pytest.raises(TransportError):
            await FilesystemTransport().get(str(tmp_path))
