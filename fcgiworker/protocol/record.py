#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import struct

from fcgiworker.errors import ProtocolError, ParamsError, UnsupportedVersionError
from fcgiworker.protocol.constants import (
    FCGI_VERSION_1,
    FCGI_HEADER_LEN,
    FCGI_NULL_REQUEST_ID,
    FCGI_UNKNOWN_TYPE,
    FCGI_RECORD_TYPES,
)

# version, type, requestId, contentLength, paddingLength, reserved
HEADER = struct.Struct("!BBHHBx")
# role, flags, reserved
BEGIN_REQUEST_BODY = struct.Struct("!HB5x")
# appStatus, protocolStatus, reserved
END_REQUEST_BODY = struct.Struct("!LB3x")
# type, reserved
UNKNOWN_TYPE_BODY = struct.Struct("!B7x")

_LONG_LENGTH = struct.Struct("!L")


class Record(object):
    """A FastCGI record.

    Record format:
    - version (1 byte): FCGI_VERSION_1
    - type (1 byte): record type
    - requestId (2 bytes BE): request ID
    - contentLength (2 bytes BE): content length
    - paddingLength (1 byte): padding length
    - reserved (1 byte): 0
    - content (contentLength bytes)
    - padding (paddingLength bytes)
    """

    def __init__(self, type=FCGI_UNKNOWN_TYPE, request_id=FCGI_NULL_REQUEST_ID,
                 content=b"", version=FCGI_VERSION_1):
        self.version = version
        self.type = type
        self.request_id = request_id
        self.content = content

    def __repr__(self):
        return "<Record %s id=%d len=%d>" % (
            FCGI_RECORD_TYPES.get(self.type, self.type),
            self.request_id, len(self.content))

    @property
    def type_name(self):
        return FCGI_RECORD_TYPES.get(self.type, str(self.type))

    @property
    def is_management(self):
        return self.request_id == FCGI_NULL_REQUEST_ID

    def encode(self):
        content_length = len(self.content)
        # Pad to 8-byte boundary for efficiency (optional but recommended)
        padding_length = -content_length & 7
        header = HEADER.pack(self.version, self.type, self.request_id,
                             content_length, padding_length)
        return header + self.content + b'\x00' * padding_length


def read_record(reader):
    """Read and decode one record.

    Returns None when the peer closed the connection on a record
    boundary. A record cut short raises ProtocolError, a protocol
    version other than 1 raises UnsupportedVersionError.
    """
    header = reader.read(FCGI_HEADER_LEN)
    if not header:
        return None
    if len(header) < FCGI_HEADER_LEN:
        raise ProtocolError("incomplete header")

    version, record_type, request_id, content_length, padding_length = \
        HEADER.unpack(header)

    if version != FCGI_VERSION_1:
        raise UnsupportedVersionError("unsupported version: %d" % version)

    content = b""
    if content_length > 0:
        content = reader.read(content_length)
        if len(content) < content_length:
            raise ProtocolError("incomplete content")

    # Discard padding
    if padding_length > 0:
        padding = reader.read(padding_length)
        if len(padding) < padding_length:
            raise ProtocolError("incomplete padding")

    return Record(record_type, request_id, content, version)


def _decode_length(data, pos):
    """Decode a FastCGI variable-length integer.

    - If high bit is 0: 1-byte length (0-127)
    - If high bit is 1: 4-byte big-endian with high bit cleared
    """
    if pos >= len(data):
        raise ParamsError("truncated length field")

    if data[pos] >> 7 == 0:
        return data[pos], pos + 1

    if pos + 4 > len(data):
        raise ParamsError("truncated 4-byte length field")
    length = _LONG_LENGTH.unpack_from(data, pos)[0] & 0x7FFFFFFF
    return length, pos + 4


def decode_pairs(data, limit=None):
    """Decode a parameter block into a list of (name, value) bytes."""
    pairs = []
    pos = 0
    while pos < len(data):
        if limit is not None and len(pairs) >= limit:
            raise ParamsError("too many parameters")

        name_length, pos = _decode_length(data, pos)
        value_length, pos = _decode_length(data, pos)

        if pos + name_length > len(data):
            raise ParamsError("truncated parameter name")
        name = bytes(data[pos:pos + name_length])
        pos += name_length

        if pos + value_length > len(data):
            raise ParamsError("truncated parameter value")
        value = bytes(data[pos:pos + value_length])
        pos += value_length

        pairs.append((name, value))
    return pairs


def _encode_length(length):
    if length < 128:
        return bytes([length])
    return _LONG_LENGTH.pack(length | 0x80000000)


def encode_pair(name, value):
    return _encode_length(len(name)) + _encode_length(len(value)) + name + value
