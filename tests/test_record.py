#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import socket

import pytest

from fcgiworker.errors import ParamsError, ProtocolError, UnsupportedVersionError
from fcgiworker.protocol.constants import (
    FCGI_PARAMS,
    FCGI_STDIN,
    FCGI_STDOUT,
    FCGI_GET_VALUES,
    FCGI_NULL_REQUEST_ID,
)
from fcgiworker.protocol.record import (
    Record,
    read_record,
    decode_pairs,
    encode_pair,
)
from fcgiworker.protocol.reader import SocketReader

from support import MockSocket, make_fcgi_record, encode_name_value


def reader_for(data, chunk_size=None):
    return SocketReader(MockSocket(data, chunk_size=chunk_size))


class TestRecordEncoding:
    """Test Record.encode."""

    def test_header_layout(self):
        data = Record(FCGI_STDOUT, 1, b'hello').encode()
        assert data[0] == 1  # version
        assert data[1] == FCGI_STDOUT
        assert data[2:4] == b'\x00\x01'
        assert data[4:6] == b'\x00\x05'
        assert data[6] == 3  # padding to 8
        assert data[8:13] == b'hello'
        assert len(data) == 16

    def test_aligned_content_has_no_padding(self):
        data = Record(FCGI_STDOUT, 1, b'12345678').encode()
        assert data[6] == 0
        assert len(data) == 16

    def test_empty_record(self):
        data = Record(FCGI_STDOUT, 2, b'').encode()
        assert data == b'\x01\x06\x00\x02\x00\x00\x00\x00'

    def test_management(self):
        assert Record(FCGI_GET_VALUES, FCGI_NULL_REQUEST_ID).is_management
        assert not Record(FCGI_STDIN, 1).is_management

    def test_type_name(self):
        assert Record(FCGI_PARAMS, 1).type_name == 'PARAMS'
        assert Record(42, 1).type_name == '42'


class TestSocketReader:
    """Test SocketReader."""

    def test_keeps_surplus_for_next_read(self):
        sock = MockSocket(b'abcdefgh')
        reader = SocketReader(sock)
        assert reader.read(3) == b'abc'
        assert sock.data == b''
        assert reader.read(5) == b'defgh'

    def test_short_read_at_eof(self):
        reader = reader_for(b'abc', chunk_size=2)
        assert reader.read(8) == b'abc'
        assert reader.read(8) == b''

    def test_over_socketpair(self):
        a, b = socket.socketpair()
        try:
            b.sendall(b'12345')
            b.shutdown(socket.SHUT_WR)
            reader = SocketReader(a, max_chunk=2)
            assert reader.read(4) == b'1234'
            assert reader.read(4) == b'5'
        finally:
            a.close()
            b.close()


class TestReadRecord:
    """Test read_record."""

    def test_reads_record(self):
        rec = read_record(reader_for(make_fcgi_record(FCGI_STDIN, 3, b'abc')))
        assert rec.type == FCGI_STDIN
        assert rec.request_id == 3
        assert rec.content == b'abc'

    def test_clean_eof(self):
        assert read_record(reader_for(b'')) is None

    def test_padding_is_skipped(self):
        data = (make_fcgi_record(FCGI_STDIN, 1, b'abc', padding=5) +
                make_fcgi_record(FCGI_STDIN, 1, b'def'))
        reader = reader_for(data)
        assert read_record(reader).content == b'abc'
        assert read_record(reader).content == b'def'
        assert read_record(reader) is None

    def test_fragmented_input(self):
        data = make_fcgi_record(FCGI_STDIN, 1, b'fragmented')
        assert read_record(reader_for(data, chunk_size=1)).content == b'fragmented'

    def test_incomplete_header(self):
        with pytest.raises(ProtocolError):
            read_record(reader_for(b'\x01\x05\x00'))

    def test_incomplete_content(self):
        data = make_fcgi_record(FCGI_STDIN, 1, b'abcdef')[:-2]
        with pytest.raises(ProtocolError):
            read_record(reader_for(data))

    def test_incomplete_padding(self):
        data = make_fcgi_record(FCGI_STDIN, 1, b'abc', padding=5)[:-1]
        with pytest.raises(ProtocolError):
            read_record(reader_for(data))

    def test_unsupported_version(self):
        data = b'\x02' + make_fcgi_record(FCGI_STDIN, 1, b'')[1:]
        with pytest.raises(UnsupportedVersionError):
            read_record(reader_for(data))


class TestNameValuePairs:
    """Test the name-value pair codec."""

    def test_decode_short(self):
        data = encode_name_value('KEY', 'val') + encode_name_value('A', '')
        assert decode_pairs(data) == [(b'KEY', b'val'), (b'A', b'')]

    def test_decode_long_value(self):
        data = encode_name_value('K', 'x' * 200)
        assert decode_pairs(data) == [(b'K', b'x' * 200)]

    def test_decode_value_with_equals(self):
        data = encode_name_value('QUERY_STRING', 'a=1&b=2')
        assert decode_pairs(data) == [(b'QUERY_STRING', b'a=1&b=2')]

    def test_truncated_length(self):
        with pytest.raises(ParamsError):
            decode_pairs(b'\x03')

    def test_truncated_long_length(self):
        with pytest.raises(ParamsError):
            decode_pairs(b'\x01\x80\x00')

    def test_truncated_value(self):
        with pytest.raises(ParamsError):
            decode_pairs(encode_name_value('KEY', 'value')[:-1])

    def test_params_error_is_protocol_error(self):
        with pytest.raises(ProtocolError):
            decode_pairs(b'\x05\x05abc')

    def test_limit(self):
        data = b''.join(encode_name_value('K%d' % i, 'v') for i in range(4))
        assert len(decode_pairs(data, limit=4)) == 4
        with pytest.raises(ParamsError):
            decode_pairs(data, limit=3)

    def test_encode_pair(self):
        assert encode_pair(b'KEY', b'val') == b'\x03\x03KEYval'
        encoded = encode_pair(b'K', b'x' * 200)
        assert encoded[1:5] == (200 | 0x80000000).to_bytes(4, 'big')
        assert encoded == encode_name_value('K', 'x' * 200)
