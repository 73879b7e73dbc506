"""Tests for src.adapters.supabase_calendar — PostgREST calendar store."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from src.adapters.supabase_calendar import SupabaseCalendarStore
from src.ports.calendar_port import CalendarError


def _mock_client(json_data=None, get_side_effect=None, raise_for_status=None):
    mock_resp = MagicMock()
    mock_resp.json.return_value = json_data
    mock_resp.raise_for_status = MagicMock(side_effect=raise_for_status)

    mock_client = AsyncMock()
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    if get_side_effect is not None:
        mock_client.get = AsyncMock(side_effect=get_side_effect)
    else:
        mock_client.get = AsyncMock(return_value=mock_resp)
    return mock_client


def _store():
    return SupabaseCalendarStore(
        url="https://proj.supabase.co/", api_key="key", table="daily_panchangam", timeout=5,
    )


class TestFetchByDate:
    @pytest.mark.asyncio
    async def test_returns_record(self):
        client = _mock_client([{"date": "2025-05-01", "rahu_kalam": "4:30 PM - 6:00 PM"}])

        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            record = await _store().fetch_by_date(date(2025, 5, 1))

        assert record.date == date(2025, 5, 1)
        assert record.window_text("rahu_kalam") == "4:30 PM - 6:00 PM"

        call = client.get.call_args
        assert call.args[0] == "https://proj.supabase.co/rest/v1/daily_panchangam"
        assert call.kwargs["params"] == {"select": "*", "date": "eq.2025-05-01"}
        assert call.kwargs["headers"]["apikey"] == "key"
        assert call.kwargs["headers"]["Authorization"] == "Bearer key"

    @pytest.mark.asyncio
    async def test_no_rows_returns_none(self):
        client = _mock_client([])
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            assert await _store().fetch_by_date(date(2025, 5, 1)) is None

    @pytest.mark.asyncio
    async def test_timeout_raises_calendar_error(self):
        client = _mock_client(get_side_effect=httpx.ReadTimeout("slow"))
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            with pytest.raises(CalendarError):
                await _store().fetch_by_date(date(2025, 5, 1))

    @pytest.mark.asyncio
    async def test_http_error_raises_calendar_error(self):
        error = httpx.HTTPStatusError(
            "server error", request=MagicMock(), response=MagicMock(status_code=500),
        )
        client = _mock_client([], raise_for_status=error)
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            with pytest.raises(CalendarError, match="HTTP 500"):
                await _store().fetch_by_date(date(2025, 5, 1))

    @pytest.mark.asyncio
    async def test_unexpected_shape_raises(self):
        client = _mock_client({"message": "not a list"})
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            with pytest.raises(CalendarError):
                await _store().fetch_by_date(date(2025, 5, 1))

    @pytest.mark.asyncio
    async def test_row_without_date_raises(self):
        client = _mock_client([{"rahu_kalam": "4:30 PM - 6:00 PM"}])
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            with pytest.raises(CalendarError):
                await _store().fetch_by_date(date(2025, 5, 1))


class TestCheckConnection:
    @pytest.mark.asyncio
    async def test_success(self):
        client = _mock_client([{"date": "2025-05-01"}])
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            assert await _store().check_connection() is True
        assert client.get.call_args.kwargs["params"] == {"select": "date", "limit": "1"}

    @pytest.mark.asyncio
    async def test_failure_returns_false(self):
        client = _mock_client(get_side_effect=httpx.ConnectError("refused"))
        with patch("src.adapters.supabase_calendar.httpx.AsyncClient", return_value=client):
            assert await _store().check_connection() is False


class TestDefaults:
    def test_reads_settings(self):
        store = SupabaseCalendarStore()
        assert store._endpoint == "https://example.supabase.co/rest/v1/daily_panchangam"
