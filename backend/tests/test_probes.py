"""
Tests for health probe functions.

This module tests:
- check_database() probe
- check_himkosh_key() probe

Tests follow AAA (Arrange, Act, Assert) pattern with mocks for external dependencies.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.probes import check_database, check_himkosh_key


def mock_session_with(execute):
    session = AsyncMock(spec=AsyncSession)
    session.execute = execute
    session.__aenter__ = AsyncMock(return_value=session)
    session.__aexit__ = AsyncMock(return_value=None)
    return session


@pytest.mark.anyio
class TestDatabaseProbe:
    """Tests for database readiness probe."""

    async def test_check_database_success(self):
        """
        Test check_database returns True when DB is healthy.

        Arrange: Mock async_session_maker to return working session
        Act: Call check_database()
        Assert: Returns True
        """
        # Arrange
        mock_session = mock_session_with(AsyncMock(return_value=MagicMock()))

        with patch("app.core.probes.async_session_maker") as mock_maker:
            mock_maker.return_value = mock_session

            # Act
            result = await check_database()

            # Assert
            assert result is True
            mock_session.execute.assert_called_once()

    async def test_check_database_connection_error(self):
        """Connection failures are reported as unhealthy, not raised."""
        # Arrange
        with patch("app.core.probes.async_session_maker") as mock_maker:
            mock_maker.side_effect = Exception("Connection failed")

            # Act
            result = await check_database()

            # Assert
            assert result is False

    async def test_check_database_timeout(self):
        """
        Test check_database returns False on timeout.

        Arrange: Mock session.execute to hang past the timeout
        Act: Call check_database() with short timeout
        Assert: Returns False (timeout caught gracefully)
        """
        # Arrange
        async def slow_query(*args, **kwargs):
            await asyncio.sleep(10)
            return MagicMock()

        mock_session = mock_session_with(AsyncMock(side_effect=slow_query))

        with patch("app.core.probes.async_session_maker") as mock_maker:
            mock_maker.return_value = mock_session

            # Act
            result = await check_database(timeout_seconds=0.1)

            # Assert
            assert result is False

    async def test_check_database_query_error(self):
        # Arrange
        mock_session = mock_session_with(AsyncMock(side_effect=Exception("Query failed")))

        with patch("app.core.probes.async_session_maker") as mock_maker:
            mock_maker.return_value = mock_session

            # Act
            result = await check_database()

            # Assert
            assert result is False


@pytest.mark.anyio
class TestHimkoshKeyProbe:
    """Tests for the HimKosh key file probe."""

    async def test_key_file_present(self, tmp_path, monkeypatch):
        # Arrange
        key_file = tmp_path / "echallan.key"
        key_file.write_bytes(b"0123456789abcdef")
        monkeypatch.setattr(settings, "himkosh_key_file", str(key_file))

        # Act
        result = await check_himkosh_key()

        # Assert
        assert result is True

    async def test_key_file_missing(self, tmp_path, monkeypatch):
        monkeypatch.setattr(settings, "himkosh_key_file", str(tmp_path / "missing.key"))

        assert await check_himkosh_key() is False
