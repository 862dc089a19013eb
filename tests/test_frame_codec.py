#!/usr/bin/env python3
"""test eISCP framing"""

import struct

import pytest

from iscp_receiver import IscpCommand, IscpReceiverError
from iscp_receiver.protocol import FrameCodec, FrameStreamDecoder, STATE_QUERIES


def test_encode_header_layout():
    """header is magic, two big-endian lengths, version and reserved bytes"""
    frame = FrameCodec().encode(IscpCommand("PWR", "01"))
    assert frame[:4] == b"ISCP"
    header_length, payload_length = struct.unpack(">II", frame[4:12])
    assert header_length == 16
    assert frame[12] == 1
    assert frame[13:16] == b"\x00\x00\x00"
    assert frame[16:] == b"!1PWR01\r"
    assert payload_length == len(b"!1PWR01\r")


def test_encode_crlf_terminator():
    """optional CR LF terminator"""
    frame = FrameCodec(use_crlf=True).encode("MVLQSTN")
    assert frame.endswith(b"!1MVLQSTN\r\n")


def test_encode_non_framed():
    """non-framed mode has no header"""
    assert FrameCodec(framed=False).encode("SLI23") == b"!1SLI23\r"


def test_decode_returns_command():
    """every state query survives a trip through the codec"""
    codec = FrameCodec()
    for command in STATE_QUERIES:
        payloads, consumed = codec.decode(codec.encode(command))
        assert len(payloads) == 1
        assert command.to_bytes() in payloads[0]
        assert consumed == len(codec.encode(command))


def test_decode_multiple_frames_in_order():
    """concatenated frames decode to one payload each, in order"""
    codec = FrameCodec()
    commands = ["PWR01", "AMT00", "MVL28", "SLI23"]
    buffer = b"".join(codec.encode(c) for c in commands)
    payloads, consumed = codec.decode(buffer)
    assert consumed == len(buffer)
    assert payloads == [f"!1{c}\r".encode("ascii") for c in commands]


def test_decode_incomplete_payload_retained():
    """a frame with a complete header but partial payload is left for the next read"""
    codec = FrameCodec()
    first = codec.encode("PWR01")
    second = codec.encode("MVL50")
    buffer = first + second[:20]
    payloads, consumed = codec.decode(buffer)
    assert payloads == [b"!1PWR01\r"]
    assert consumed == len(first)

    rest = buffer[consumed:] + second[20:]
    payloads, consumed = codec.decode(rest)
    assert payloads == [b"!1MVL50\r"]
    assert consumed == len(rest)


def test_decode_incomplete_header_retained():
    """a partial header is not consumed"""
    codec = FrameCodec()
    frame = codec.encode("PWR01")
    payloads, consumed = codec.decode(frame[:10])
    assert payloads == []
    assert consumed == 0


def test_decode_no_magic_consumes_everything():
    """garbage without a marker is dropped"""
    payloads, consumed = FrameCodec().decode(b"garbage bytes")
    assert payloads == []
    assert consumed == len(b"garbage bytes")


def test_decode_keeps_partial_magic_tail():
    """a trailing fragment of the marker may start the next frame"""
    payloads, consumed = FrameCodec().decode(b"junkIS")
    assert payloads == []
    assert consumed == 4


def test_decode_skips_leading_garbage():
    """bytes before the marker are skipped"""
    codec = FrameCodec()
    payloads, _ = codec.decode(b"\x00\x01xx" + codec.encode("AMT01"))
    assert payloads == [b"!1AMT01\r"]


def test_decode_non_framed():
    """non-framed mode returns the whole buffer as one payload"""
    payloads, consumed = FrameCodec(framed=False).decode(b"!1PWR01\x1a\r\n")
    assert payloads == [b"!1PWR01\x1a\r\n"]
    assert consumed == len(b"!1PWR01\x1a\r\n")


def test_stream_decoder_split_reads():
    """the stream decoder reassembles frames split across reads"""
    codec = FrameCodec()
    data = codec.encode("PWR01") + codec.encode("SLI24")
    decoder = FrameStreamDecoder(codec)
    payloads = []
    for i in range(0, len(data), 7):
        payloads.extend(decoder.feed(data[i:i + 7]))
    assert payloads == [b"!1PWR01\r", b"!1SLI24\r"]
    assert decoder.pending == 0


def test_command_parse():
    """commands parse from their string form"""
    command = IscpCommand.parse("!1mvlQSTN\r")
    assert command.code == "MVL"
    assert command.is_query
    assert command == "MVLQSTN"
    assert IscpCommand.query("SLI").to_str() == "SLIQSTN"


def test_command_rejects_bad_code():
    """codes must be three letters"""
    with pytest.raises(IscpReceiverError):
        IscpCommand("P1R", "01")
    with pytest.raises(IscpReceiverError):
        IscpCommand.parse("PW")
