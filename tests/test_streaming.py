import json

import pytest

from oaiclient import Stream, iter_events


def test_yields_each_data_line_until_done():
    raw = b'data: {"a":1}\n\ndata: {"b":2}\n\ndata: [DONE]\n'
    assert list(iter_events([raw])) == [{"a": 1}, {"b": 2}]


def test_invalid_json_fails_on_the_offending_pull():
    events = iter_events([b'data: {"a":1}\ndata: not-json\n'])

    assert next(events) == {"a": 1}
    with pytest.raises(json.JSONDecodeError):
        next(events)
    # a failed generator never resumes
    with pytest.raises(StopIteration):
        next(events)


def test_line_split_across_chunks():
    assert list(iter_events([b'data: {"a"', b':1}\n'])) == [{"a": 1}]


def test_chunk_boundaries_do_not_matter():
    raw = b'data: {"id":1,"text":"hello"}\n\ndata: {"id":2,"text":"world"}\n\ndata: [DONE]\n'
    whole = list(iter_events([raw]))
    for size in (1, 2, 3, 7, 16):
        pieces = [raw[i:i + size] for i in range(0, len(raw), size)]
        assert list(iter_events(pieces)) == whole


def test_multibyte_character_split_across_chunks():
    raw = 'data: {"text":"héllo ✓"}\n'.encode("utf-8")
    cut = raw.index("✓".encode("utf-8")) + 1
    assert list(iter_events([raw[:cut], raw[cut:]])) == [{"text": "héllo ✓"}]


def test_non_data_lines_are_ignored():
    raw = b': keep-alive\nevent: message\nid: 7\n\n   \ndata: {"ok":true}\n'
    assert list(iter_events([raw])) == [{"ok": True}]


def test_incomplete_trailing_line_is_not_emitted():
    assert list(iter_events([b'data: {"a":1}\ndata: {"b":2}'])) == [{"a": 1}]


def test_done_discards_buffered_text():
    raw = b'data: {"a":1}\ndata: [DONE]\ndata: {"b":2}\ndata: {"c"'
    assert list(iter_events([raw])) == [{"a": 1}]


def test_done_stops_pulling_from_source():
    pulled = []

    def source():
        for chunk in (b'data: {"a":1}\n', b"data: [DONE]\n", b'data: {"b":2}\n'):
            pulled.append(chunk)
            yield chunk

    assert list(iter_events(source())) == [{"a": 1}]
    assert len(pulled) == 2


def test_prefix_without_space_is_not_stripped():
    with pytest.raises(json.JSONDecodeError):
        list(iter_events([b'data:{"a":1}\n']))


def test_surrounding_whitespace_is_trimmed():
    assert list(iter_events([b'   data:    {"a": 1}   \r\n'])) == [{"a": 1}]


def test_accepts_text_chunks():
    assert list(iter_events(['data: {"a":1}\n', "data: [DONE]\n"])) == [{"a": 1}]


def test_source_errors_propagate():
    def source():
        yield b'data: {"a":1}\n'
        raise ConnectionResetError("peer went away")

    events = iter_events(source())
    assert next(events) == {"a": 1}
    with pytest.raises(ConnectionResetError):
        next(events)


def test_stream_closes_once_exhausted():
    closed = []
    stream = Stream([b'data: {"a":1}\ndata: [DONE]\n'], on_close=lambda: closed.append(True))

    assert list(stream) == [{"a": 1}]
    assert stream.closed
    assert closed == [True]
    assert list(stream) == []


def test_stream_close_is_idempotent_and_stops_iteration():
    closed = []
    stream = Stream([b'data: {"a":1}\ndata: {"b":2}\n'], on_close=lambda: closed.append(True))

    assert next(stream) == {"a": 1}
    stream.close()
    stream.close()

    assert closed == [True]
    with pytest.raises(StopIteration):
        next(stream)


def test_stream_closes_on_decode_error():
    closed = []
    stream = Stream([b"data: nope\n"], on_close=lambda: closed.append(True))

    with pytest.raises(json.JSONDecodeError):
        next(stream)
    assert closed == [True]


def test_stream_context_manager_releases_on_early_exit():
    closed = []
    with Stream([b'data: {"a":1}\ndata: {"b":2}\n'], on_close=lambda: closed.append(True)) as stream:
        for chunk in stream:
            break
    assert closed == [True]
