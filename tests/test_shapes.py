"""Tests for the response shape normalizer."""
import json

import pytest

from optionshouse.exceptions import ResponseParseError, ResponseShapeError
from optionshouse.protocol.messages import PositionRecord, PositionsData, Reply
from optionshouse.protocol.shapes import ParsePath, ShapeNormalizer, normalize

STRICT = Reply[PositionsData[list[PositionRecord]]]
FALLBACK = Reply[PositionsData[PositionRecord]]


def _reply(unified=..., **data) -> str:
    if unified is not ...:
        data["unified"] = unified
    return json.dumps({"EZMessage": {"action": "account.positions", "data": data}})


@pytest.fixture
def normalizer() -> ShapeNormalizer:
    return ShapeNormalizer(STRICT, FALLBACK)


class TestShapeNormalizer:
    """Tests for ShapeNormalizer.parse."""

    def test_list_uses_strict_path(self, normalizer, position_record, option_position_record):
        raw = _reply([position_record, option_position_record], timeStamp="10:30")
        result = normalizer.parse(raw)

        assert len(result) == 2
        assert result.path is ParsePath.STRICT
        assert result[0].security_key == "IBM:::S"
        assert result[1].security_key == "IBM:20110716:1600000:C"
        assert result.document.data.time_stamp == "10:30"

    def test_bare_object_uses_fallback(self, normalizer, position_record):
        result = normalizer.parse(_reply(position_record))

        assert len(result) == 1
        assert result.path is ParsePath.FALLBACK
        assert result[0].qty == 100
        assert result[0].mkt_val == 16025.0

    def test_single_element_list_matches_bare_object(self, normalizer, position_record):
        as_list = normalizer.parse(_reply([position_record]))
        as_object = normalizer.parse(_reply(position_record))
        assert list(as_list) == list(as_object)

    def test_empty_list(self, normalizer):
        result = normalizer.parse(_reply([]))
        assert len(result) == 0
        assert result.path is ParsePath.STRICT

    def test_absent_field_is_empty(self, normalizer):
        result = normalizer.parse(_reply())
        assert len(result) == 0
        assert result.path is ParsePath.STRICT

    def test_null_field_is_empty(self, normalizer):
        result = normalizer.parse(_reply(None))
        assert len(result) == 0

    def test_keeps_raw_text(self, normalizer, position_record):
        raw = _reply([position_record])
        assert normalizer.parse(raw).raw == raw

    def test_corrupt_json_raises(self, normalizer):
        with pytest.raises(ResponseShapeError) as exc_info:
            normalizer.parse('{"EZMessage": {"data": ')
        err = exc_info.value
        assert err.strict_error is not None
        assert err.fallback_error is not None
        assert isinstance(err, ResponseParseError)

    def test_wrong_type_raises(self, normalizer):
        with pytest.raises(ResponseShapeError):
            normalizer.parse(_reply("not a position"))

    def test_list_of_wrong_type_raises(self, normalizer):
        with pytest.raises(ResponseShapeError):
            normalizer.parse(_reply([1, 2]))

    def test_function_form(self, position_record):
        result = normalize(_reply(position_record), STRICT, FALLBACK)
        assert len(result) == 1
        assert result.path is ParsePath.FALLBACK

    def test_missing_scalars_default(self, normalizer):
        result = normalizer.parse(_reply({"securityKey": "SPY:::S", "qty": None}))
        assert result[0].qty == 0
        assert result[0].description == ""
