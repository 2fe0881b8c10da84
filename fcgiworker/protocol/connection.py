#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import io
import socket
from functools import partial

from fcgiworker import util
from fcgiworker.errors import ParamsError, ProtocolError
from fcgiworker.protocol.channel import InputChannel, OutputChannel
from fcgiworker.protocol.constants import (
    FCGI_BEGIN_REQUEST,
    FCGI_ABORT_REQUEST,
    FCGI_END_REQUEST,
    FCGI_PARAMS,
    FCGI_STDIN,
    FCGI_STDOUT,
    FCGI_STDERR,
    FCGI_DATA,
    FCGI_GET_VALUES,
    FCGI_GET_VALUES_RESULT,
    FCGI_UNKNOWN_TYPE,
    FCGI_NULL_REQUEST_ID,
    FCGI_MAX_CONTENT_LEN,
    FCGI_KEEP_CONN,
    FCGI_REQUEST_COMPLETE,
    FCGI_CANT_MPX_CONN,
    FCGI_UNKNOWN_ROLE,
    FCGI_ROLES,
    MANAGEMENT_VALUES,
)
from fcgiworker.protocol.record import (
    Record,
    read_record,
    decode_pairs,
    encode_pair,
    BEGIN_REQUEST_BODY,
    END_REQUEST_BODY,
    UNKNOWN_TYPE_BODY,
)
from fcgiworker.protocol.reader import SocketReader

# seconds spent draining the socket before it is closed
DRAIN_TIMEOUT = 2.0


class Connection(object):
    """A connection from the web server carrying one request at a time.

    Request parsing flow:
    1. Read BEGIN_REQUEST record -> extract role, flags, requestId
    2. Read PARAMS records until empty -> raw "NAME=VALUE" entries
    3. STDIN records are read on demand by the input channel

    Management records (requestId 0) are answered whenever they show
    up. Records for other request ids are skipped, a second
    BEGIN_REQUEST is refused with FCGI_CANT_MPX_CONN.
    """

    def __init__(self, sock, addr, cfg, log):
        self.sock = sock
        self.addr = addr
        self.cfg = cfg
        self.log = log
        self.reader = SocketReader(sock)

        self.request_id = None
        self.role = None
        self.flags = 0
        self.params = []
        self.aborted = False
        self.stdin_complete = False

    def __str__(self):
        return "<Connection %s request=%s>" % (self.addr, self.request_id)

    @property
    def keep_conn(self):
        return bool(self.flags & FCGI_KEEP_CONN)

    def fileno(self):
        return self.sock.fileno()

    def read_record(self):
        """Read the next request record, answering management records."""
        while True:
            rec = read_record(self.reader)
            if rec is None or not rec.is_management:
                return rec
            self.handle_management(rec)

    def handle_management(self, rec):
        if rec.type == FCGI_GET_VALUES:
            content = b"".join(
                encode_pair(name, MANAGEMENT_VALUES[name])
                for name, _ in decode_pairs(rec.content)
                if name in MANAGEMENT_VALUES
            )
            self.write_record(FCGI_GET_VALUES_RESULT, content,
                              FCGI_NULL_REQUEST_ID)
        else:
            self.log.debug("Unknown management record %s", rec)
            self.write_record(FCGI_UNKNOWN_TYPE, UNKNOWN_TYPE_BODY.pack(rec.type),
                              FCGI_NULL_REQUEST_ID)

    def begin(self):
        """Read BEGIN_REQUEST and the complete PARAMS stream.

        Returns False if the web server closed the connection before a
        request started.
        """
        params = io.BytesIO()

        while True:
            rec = self.read_record()
            if rec is None:
                if self.request_id is None:
                    return False
                raise ProtocolError("connection closed while reading params")

            if rec.type == FCGI_BEGIN_REQUEST:
                self._begin_request(rec)
                continue

            if self.request_id is None or rec.request_id != self.request_id:
                self.log.debug("Skipping %s for unknown request", rec)
                continue

            if rec.type == FCGI_ABORT_REQUEST:
                # aborted before the application saw it
                self.end_request()
                self._reset()
                params = io.BytesIO()
                continue

            if rec.type != FCGI_PARAMS:
                raise ProtocolError("expected PARAMS, got %s" % rec.type_name)

            # Empty PARAMS record signals end of parameters
            if not rec.content:
                break
            limit = self.cfg.limit_request_params_size
            if limit and params.tell() + len(rec.content) > limit:
                raise ParamsError("parameter block larger than %d bytes"
                                  % limit)
            params.write(rec.content)

        pairs = decode_pairs(params.getvalue(), self.cfg.limit_request_params)
        self.params = [name + b"=" + value for name, value in pairs]
        return True

    def _begin_request(self, rec):
        if len(rec.content) < BEGIN_REQUEST_BODY.size:
            raise ProtocolError("BEGIN_REQUEST content too short")
        role, flags = BEGIN_REQUEST_BODY.unpack_from(rec.content)

        if self.request_id is not None:
            self.log.debug("Refusing request %d, %d in progress",
                           rec.request_id, self.request_id)
            self.end_request(protocol_status=FCGI_CANT_MPX_CONN,
                             request_id=rec.request_id)
            return

        if role not in FCGI_ROLES:
            self.log.debug("Refusing request %d, unknown role %d",
                           rec.request_id, role)
            self.end_request(protocol_status=FCGI_UNKNOWN_ROLE,
                             request_id=rec.request_id)
            return

        self.request_id = rec.request_id
        self.role = role
        self.flags = flags

    def _reset(self):
        self.request_id = None
        self.role = None
        self.flags = 0

    def read_stdin(self):
        """Return the next chunk of FCGI_STDIN content.

        An empty result means the input is over: the empty STDIN record
        arrived, the web server aborted the request or hung up.
        """
        if self.stdin_complete:
            return b""

        while True:
            rec = self.read_record()
            if rec is None:
                self.stdin_complete = True
                return b""

            if rec.type == FCGI_BEGIN_REQUEST:
                self._begin_request(rec)
                continue

            if rec.request_id != self.request_id:
                continue

            if rec.type == FCGI_STDIN:
                if not rec.content:
                    self.stdin_complete = True
                return rec.content

            if rec.type == FCGI_ABORT_REQUEST:
                self.aborted = True
                self.stdin_complete = True
                return b""

            if rec.type == FCGI_DATA:
                # filter data is not exposed
                continue

            raise ProtocolError("unexpected %s record" % rec.type_name)

    def write_record(self, record_type, content, request_id=None):
        """Send content as one or more records of the given type.

        Content longer than 65535 bytes is split across records. Empty
        content sends a single empty record (end of stream).
        """
        if request_id is None:
            request_id = self.request_id

        records = []
        offset = 0
        while True:
            chunk = content[offset:offset + FCGI_MAX_CONTENT_LEN]
            records.append(Record(record_type, request_id, chunk).encode())
            offset += len(chunk)
            if offset >= len(content):
                break
        self.sock.sendall(b"".join(records))

    def end_request(self, app_status=0, protocol_status=FCGI_REQUEST_COMPLETE,
                    request_id=None):
        """Send END_REQUEST.

        END_REQUEST body (8 bytes):
        - appStatus (4 bytes BE): application exit status
        - protocolStatus (1 byte): FCGI_REQUEST_COMPLETE, etc.
        - reserved (3 bytes): 0
        """
        content = END_REQUEST_BODY.pack(app_status & 0xFFFFFFFF, protocol_status)
        self.write_record(FCGI_END_REQUEST, content, request_id)

    def stdin_channel(self):
        return InputChannel(self.read_stdin)

    def stdout_channel(self, bufsize):
        return OutputChannel(partial(self.write_record, FCGI_STDOUT),
                             partial(self.write_record, FCGI_STDOUT, b""),
                             bufsize)

    def stderr_channel(self, bufsize):
        # an unused error stream is never opened, so it is not terminated
        return OutputChannel(partial(self.write_record, FCGI_STDERR),
                             partial(self.write_record, FCGI_STDERR, b""),
                             bufsize, end_when_empty=False)

    def close(self):
        if self.sock is None:
            return
        sock, self.sock = self.sock, None

        # Shut down our side, then read whatever the web server still
        # sends so that closing does not reset the connection before
        # our last records are delivered.
        try:
            sock.shutdown(socket.SHUT_WR)
            sock.settimeout(DRAIN_TIMEOUT)
            while sock.recv(1024):
                pass
        except OSError:
            pass
        finally:
            util.close(sock)
