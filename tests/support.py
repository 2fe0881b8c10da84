#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

"""Helpers building FastCGI traffic for the tests."""

import struct
from unittest import mock

from fcgiworker.config import Config
from fcgiworker.protocol.connection import Connection
from fcgiworker.protocol.constants import (
    FCGI_VERSION_1,
    FCGI_BEGIN_REQUEST,
    FCGI_PARAMS,
    FCGI_STDIN,
    FCGI_RESPONDER,
)
from fcgiworker.request import Request, parse_environ


def make_fcgi_record(record_type, request_id, content, padding=0):
    """Create a FastCGI record.

    Args:
        record_type: Record type (FCGI_BEGIN_REQUEST, FCGI_PARAMS, etc.)
        request_id: Request ID (0-65535)
        content: Record content as bytes
        padding: Optional padding length

    Returns:
        bytes: Complete FastCGI record
    """
    content_length = len(content)
    header = bytes([
        FCGI_VERSION_1,
        record_type,
        (request_id >> 8) & 0xFF,
        request_id & 0xFF,
        (content_length >> 8) & 0xFF,
        content_length & 0xFF,
        padding,
        0,  # reserved
    ])
    return header + content + b'\x00' * padding


def make_begin_request(request_id, role=FCGI_RESPONDER, flags=0):
    """Create a BEGIN_REQUEST record."""
    content = bytes([
        (role >> 8) & 0xFF,
        role & 0xFF,
        flags,
        0, 0, 0, 0, 0,  # reserved
    ])
    return make_fcgi_record(FCGI_BEGIN_REQUEST, request_id, content)


def encode_name_value(name, value):
    """Encode a name-value pair for a PARAMS record.

    Uses FastCGI length encoding:
    - 1 byte if length < 128
    - 4 bytes (big-endian with high bit set) if length >= 128
    """
    if isinstance(name, str):
        name = name.encode('latin-1')
    if isinstance(value, str):
        value = value.encode('latin-1')

    result = b''
    for length in (len(name), len(value)):
        if length < 128:
            result += bytes([length])
        else:
            result += (length | 0x80000000).to_bytes(4, 'big')
    return result + name + value


def make_params_records(params, request_id):
    """PARAMS records for a dict or list of pairs, then an empty one."""
    if isinstance(params, dict):
        params = params.items()
    content = b''.join(encode_name_value(n, v) for n, v in params)

    result = b''
    if content:
        result = make_fcgi_record(FCGI_PARAMS, request_id, content)
    # Empty PARAMS record to signal end
    result += make_fcgi_record(FCGI_PARAMS, request_id, b'')
    return result


def make_stdin_records(body, request_id, end=True):
    """STDIN records for a request body, then an empty one."""
    result = b''
    if body:
        result = make_fcgi_record(FCGI_STDIN, request_id, body)
    if end:
        result += make_fcgi_record(FCGI_STDIN, request_id, b'')
    return result


def make_fcgi_request(params, body=b'', request_id=1, role=FCGI_RESPONDER,
                      flags=0):
    """Create a complete FastCGI request."""
    result = make_begin_request(request_id, role, flags)
    result += make_params_records(params, request_id)
    result += make_stdin_records(body, request_id)
    return result


def parse_records(data):
    """Split sent bytes into (type, request_id, content) tuples."""
    records = []
    pos = 0
    while pos < len(data):
        _, rtype, request_id, clen, plen = struct.unpack_from("!BBHHBx", data, pos)
        pos += 8
        records.append((rtype, request_id, data[pos:pos + clen]))
        pos += clen + plen
    return records


class MockSocket(object):
    """Socket replaying canned input and collecting output."""

    def __init__(self, data=b'', chunk_size=None, send_error=None):
        self.data = data
        self.chunk_size = chunk_size
        self.send_error = send_error
        self.sent = b''
        self.closed = False
        self.shutdown_called = False

    def recv(self, size):
        if self.chunk_size:
            size = min(size, self.chunk_size)
        chunk, self.data = self.data[:size], self.data[size:]
        return chunk

    def sendall(self, data):
        if self.send_error is not None:
            raise self.send_error
        self.sent += data

    def shutdown(self, how):
        self.shutdown_called = True

    def settimeout(self, timeout):
        pass

    def fileno(self):
        return -1 if self.closed else 42

    def close(self):
        self.closed = True

    def records(self):
        return parse_records(self.sent)


def make_log():
    return mock.Mock()


def make_connection(data, cfg=None, **kwargs):
    sock = MockSocket(data, **kwargs)
    conn = Connection(sock, ('127.0.0.1', 51234), cfg or Config(), make_log())
    return sock, conn


def make_request(params=None, body=b'', cfg=None, **kwargs):
    """An accepted Request over a MockSocket. Returns (sock, request)."""
    cfg = cfg or Config()
    data = make_fcgi_request(params or {'REQUEST_METHOD': 'GET'}, body)
    sock, conn = make_connection(data, cfg, **kwargs)
    assert conn.begin()
    req = Request(conn, parse_environ(conn.params), cfg, conn.log)
    return sock, req
