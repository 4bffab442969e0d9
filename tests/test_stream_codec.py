import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))

import symsub
from symsub import (
    MalformedStream,
    Pair,
    compress,
    decompress,
    describe_stream,
    parse_stream,
    read_header,
    replay_dictionary,
    serialize_stream,
)


def test_read_header():
    assert read_header("}~abc") == ("}", "~")
    with pytest.raises(MalformedStream):
        read_header("}")
    with pytest.raises(MalformedStream):
        read_header("~~abc")


def test_serialize_empty_dictionary():
    assert serialize_stream("}", "~", [], "hello") == "}~hello"


def test_serialize_records_in_insertion_order():
    pairs = [Pair("|", "ab"), Pair("{", "|c")]
    assert serialize_stream("}", "~", pairs, "{{") == "}~~|=ab~~{=|c~{{"


def test_parse_stream_records_and_repeat():
    parsed = parse_stream("}~~|=abc~~6~|~")
    assert parsed.repeat_char == "}"
    assert parsed.ctrl_char == "~"
    assert parsed.pairs == [Pair("|", "abc")]
    assert parsed.payload == "||||||"


def test_parse_stream_value_may_contain_separator():
    parsed = parse_stream("}~~|=a=b~x|")
    assert parsed.pairs == [Pair("|", "a=b")]
    assert parsed.payload == "x|"


def test_parse_stream_without_dictionary():
    parsed = parse_stream("}~plain text")
    assert parsed.pairs == []
    assert parsed.payload == "plain text"


def test_replay_reverse_order():
    pairs = [Pair("X", "ab"), Pair("Y", "XcX")]
    assert replay_dictionary("YY", pairs) == "abcababcab"
    # insertion order leaves the inner keys behind
    assert replay_dictionary("YY", list(reversed(pairs))) == "XcXXcX"


def test_replay_rejects_self_reference():
    with pytest.raises(MalformedStream):
        replay_dictionary("Y", [Pair("Y", "aYb")])


@pytest.mark.parametrize("cut", range(3, 9))
def test_truncated_dictionary_is_malformed(cut):
    stream = compress("abc" * 6)
    assert stream == "}~~|=abc~~6~|~"
    with pytest.raises(MalformedStream):
        decompress(stream[:cut])


def test_truncated_repeat_is_malformed():
    with pytest.raises(MalformedStream):
        decompress("}~~|=abc~~6~|")


@pytest.mark.parametrize("bad", [
    "",
    "}",
    "}~~ab~c~",       # count is not decimal
    "}~~ab=c~",       # key longer than one symbol
    "}~~|=~",         # empty value
    "}~x~|=ab~",      # record after payload
    "}~~|=ab~~|=cd~", # duplicate key
    "}~~}=ab~",       # key collides with repeat_char
    "}~~|=ab~~3~~",   # empty repeat body
])
def test_malformed_streams(bad):
    with pytest.raises(MalformedStream):
        decompress(bad)


def test_malformed_stream_is_value_error():
    with pytest.raises(ValueError):
        decompress("}")


def test_nested_keys_round_trip():
    text = " ".join(f"abcdefgh{i}" for i in range(1, 9))
    stream, meta = symsub.encode(text)
    # the second value refers to the first key
    assert meta["pairs"] == [Pair("|", "abcdefgh"), Pair("{", " |")]
    assert stream == "}~~|=abcdefgh~~{= |~|1{2{3{4{5{6{7{8"
    assert decompress(stream) == text


def test_chained_keys_round_trip():
    text = "quick brown fox " * 3 + "lorem ipsum dolor " * 3
    stream, meta = symsub.encode(text)
    assert [p.value for p in meta["pairs"]] == ["lorem ipsum dolor ", "quick brown ", "{fox"]
    assert decompress(stream) == text


def test_describe_stream():
    dump = describe_stream(compress("abc" * 6))
    assert "repeat_char: '}'" in dump
    assert "ctrl_char:   '~'" in dump
    assert "'|' = 'abc'" in dump
    assert "pairs:       1" in dump
