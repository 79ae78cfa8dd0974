import json

import pytest

from askai_core.domain.exceptions import EnvelopeFormatError
from askai_core.stream.envelope import unwrap, unwrap_frame


def test_legacy_wrapper_is_unescaped_and_inner_prefix_stripped():
    frame = 'Ask AI event: data("data: {\\"trip_duration\\":\\"3 days\\"}")'
    assert unwrap(frame) == '{"trip_duration":"3 days"}'
    assert unwrap_frame(frame).shape == "legacy"


def test_legacy_wrapper_without_inner_prefix_uses_whole_content():
    frame = 'Ask AI event: data("{\\"a\\":\\"x\\\\\\\\y\\"}")'
    text = unwrap(frame)
    assert text == '{"a":"x\\\\y"}'
    assert json.loads(text) == {"a": "x\\y"}


def test_legacy_wrapper_without_closing_quote_fails():
    with pytest.raises(EnvelopeFormatError):
        unwrap('Ask AI event: data("data: {\\"a\\":1}')


def test_legacy_wrapper_inside_sse_data_line():
    frame = 'data: Ask AI event: data("data: {\\"trip_duration\\":\\"3 days\\"}")'
    result = unwrap_frame(frame)
    assert result.shape == "legacy"
    assert result.text == '{"trip_duration":"3 days"}'


def test_canonical_prefix_is_stripped_exactly():
    assert unwrap('data: {"a":1}') == '{"a":1}'
    assert unwrap_frame('data: {"a":1}').shape == "data"


def test_canonical_frame_with_event_line():
    frame = 'event: message\nid: 7\ndata: {"a":1}'
    assert unwrap(frame) == '{"a":1}'


def test_multiple_data_lines_are_joined():
    frame = 'data: {"a":\ndata: 1}'
    assert json.loads(unwrap(frame)) == {"a": 1}


def test_canonical_json_containing_legacy_marker_is_not_legacy():
    frame = 'data: {"k":"data(","x":1}'
    result = unwrap_frame(frame)
    assert result.shape == "data"
    assert json.loads(result.text) == {"k": "data(", "x": 1}


def test_unrecognized_frame_is_returned_verbatim():
    frame = '{"already":"bare"}'
    result = unwrap_frame(frame)
    assert result.text == frame
    assert result.shape == "bare"
    assert not result.recognized


def test_comment_frame_is_marked():
    assert unwrap_frame(": ping").shape == "comment"
    assert unwrap_frame("event: heartbeat").shape == "comment"
