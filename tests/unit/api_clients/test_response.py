"""Unit tests for response normalization and status classification."""

import dataclasses

import pytest

from fluidinfo.api_clients.errors import ResponseParseError
from fluidinfo.api_clients.request_builder import VALUE_CONTENT_TYPE
from fluidinfo.api_clients.response import is_success, normalize_response
from fluidinfo.api_clients.transport import RawResponse


class TestIsSuccess:
    """Test which statuses count as success."""

    @pytest.mark.parametrize("status", [1, 100, 200, 201, 204, 299, 304])
    def test_success_statuses(self, status):
        assert is_success(status)

    @pytest.mark.parametrize("status", [0, 300, 301, 303, 400, 401, 404, 500])
    def test_error_statuses(self, status):
        assert not is_success(status)


class TestNormalizeResponse:
    """Test building a Result from a raw transport response."""

    def test_header_names_are_lower_cased(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"Content-Type": "text/plain", "X-FluidDB-Request-Id": "abc"},
            body_text="hello",
        )
        result = normalize_response(raw)
        assert result.headers == {
            "content-type": "text/plain",
            "x-fluiddb-request-id": "abc",
        }

    def test_json_body_is_parsed(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"Content-Type": "application/json"},
            body_text='{"id": "abc"}',
            handle="handle",
        )
        result = normalize_response(raw)
        assert result.data == {"id": "abc"}
        assert result.raw_data == '{"id": "abc"}'
        assert result.request == "handle"
        assert result.status == 200
        assert result.status_text == "OK"

    def test_value_json_body_is_parsed(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"content-type": VALUE_CONTENT_TYPE},
            body_text='"hello"',
        )
        assert normalize_response(raw).data == "hello"

    def test_other_bodies_stay_text(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"content-type": "text/html"},
            body_text="<h1>hi</h1>",
        )
        result = normalize_response(raw)
        assert result.data == "<h1>hi</h1>"
        assert result.data == result.raw_data

    def test_missing_content_type_stays_text(self):
        raw = RawResponse(status=204, status_text="No Content", body_text="")
        assert normalize_response(raw).data == ""

    def test_empty_json_body_is_not_parsed(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"content-type": VALUE_CONTENT_TYPE},
            body_text="",
        )
        assert normalize_response(raw).data == ""

    def test_invalid_json_raises(self):
        raw = RawResponse(
            status=200,
            status_text="OK",
            headers={"content-type": "application/json"},
            body_text="{not json",
        )
        with pytest.raises(ResponseParseError) as exc_info:
            normalize_response(raw)
        assert exc_info.value.status_code == 200
        assert exc_info.value.raw_data == "{not json"

    def test_result_is_immutable(self):
        result = normalize_response(RawResponse(status=200, status_text="OK"))
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.status = 500
