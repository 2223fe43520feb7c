"""Unit tests for ticket data models."""

from datetime import datetime, timedelta, timezone

import pytest

from afip_ta.models.ticket import (
    CacheEntry,
    LoginTicketResponse,
    format_timestamp,
    parse_timestamp,
    serialize_timestamp,
)


class TestTimestamps:
    def test_format_seconds_precision(self):
        value = datetime(2024, 5, 1, 12, 0, 0, 123456, tzinfo=timezone.utc)

        assert format_timestamp(value) == "2024-05-01T12:00:00+00:00"

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("2024-05-01T12:00:00Z", datetime(2024, 5, 1, 12, tzinfo=timezone.utc)),
            ("2024-05-01T12:00:00", datetime(2024, 5, 1, 12, tzinfo=timezone.utc)),
            (
                "2024-05-01T09:00:00.000-03:00",
                datetime(2024, 5, 1, 9, tzinfo=timezone(timedelta(hours=-3))),
            ),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_timestamp(text) == expected

    def test_serialize_keeps_fraction(self):
        value = datetime(2024, 5, 1, 21, 0, 0, 734000, tzinfo=timezone(timedelta(hours=-3)))

        text = serialize_timestamp(value)

        assert text == "2024-05-01T21:00:00.734000-03:00"
        assert parse_timestamp(text) == value

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")


class TestLoginTicketResponse:
    def test_dict_layout(self, make_response, fixed_now):
        data = make_response(fixed_now).to_dict()

        assert data["header"]["expiration_time"] == "2024-05-01T12:00:00+00:00"
        assert data["header"]["generation_time"] == "2024-05-01T00:00:00+00:00"
        assert data["credentials"] == {"token": "T1", "sign": "S1"}

    def test_from_dict_restores_response(self, make_response, fixed_now):
        response = make_response(fixed_now)

        assert LoginTicketResponse.from_dict(response.to_dict()) == response

    def test_from_dict_incomplete(self):
        with pytest.raises(KeyError):
            LoginTicketResponse.from_dict({"header": {}})

    @pytest.mark.parametrize("field, value", [("token", None), ("sign", ""), ("token", 42)])
    def test_from_dict_rejects_unusable_credentials(self, make_response, fixed_now, field, value):
        data = make_response(fixed_now).to_dict()
        data["credentials"][field] = value

        with pytest.raises(ValueError) as exc_info:
            LoginTicketResponse.from_dict(data)

        assert field in str(exc_info.value)

    def test_cache_entry_expiration(self, make_response, fixed_now):
        entry = CacheEntry(cuit="20111111111", service="wsfe", response=make_response(fixed_now))

        assert entry.expiration_time == fixed_now
