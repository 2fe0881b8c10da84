#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

"""Buffered transport channels underneath request streams.

Channels never raise for transport faults. A failed call records an
error code in ``error`` (an errno value when positive, one of the
negative codes of ``fcgiworker.errors`` otherwise) and returns an EOF
result: ``-1`` or empty bytes. The error is sticky, later calls fail
straight away. Translating codes into exceptions is the job of
``fcgiworker.stream.Stream``.
"""

import errno

from fcgiworker.errors import StreamError

NEWLINE = 0x0A


def _error_code(exc):
    if isinstance(exc, StreamError):
        return exc.code
    return exc.errno or errno.EIO


class InputChannel(object):
    """Reader over a chunk source.

    ``source()`` returns the next chunk of input, empty bytes once the
    input is over.
    """

    def __init__(self, source):
        self.source = source
        self.buf = b""
        self.pos = 0
        self.pushback = None
        self.seen_eof = False
        self.closed = False
        self.error = 0

    def _available(self):
        return len(self.buf) - self.pos

    def _fill(self):
        """Fetch one more chunk. False at end of input or on error."""
        if self.error or self.closed or self.seen_eof:
            return False
        try:
            data = self.source()
        except (StreamError, OSError) as e:
            self.error = _error_code(e)
            return False

        if not data:
            self.seen_eof = True
            return False

        self.buf = self.buf[self.pos:] + data
        self.pos = 0
        return True

    def read(self, size):
        """Read up to size bytes, fewer only at end of input or on error."""
        if self.closed:
            return b""

        out = []
        if size > 0 and self.pushback is not None:
            out.append(bytes([self.pushback]))
            self.pushback = None
            size -= 1

        while size > 0:
            if not self._available() and not self._fill():
                break
            chunk = self.buf[self.pos:self.pos + size]
            self.pos += len(chunk)
            size -= len(chunk)
            out.append(chunk)
        return b"".join(out)

    def getc(self):
        if self.closed:
            return -1

        if self.pushback is not None:
            c, self.pushback = self.pushback, None
            return c

        if not self._available() and not self._fill():
            return -1
        c = self.buf[self.pos]
        self.pos += 1
        return c

    def ungetc(self, c):
        """Push one byte back. -1 if the pushback slot is already taken."""
        if self.closed or self.error or self.pushback is not None:
            return -1
        self.pushback = c
        return c

    def readline(self, limit):
        """Read up to limit bytes, stopping after a newline."""
        if self.closed:
            return b""

        out = bytearray()
        if limit > 0 and self.pushback is not None:
            out.append(self.pushback)
            self.pushback = None
            if out[-1] == NEWLINE:
                return bytes(out)

        while len(out) < limit:
            if not self._available() and not self._fill():
                break
            want = limit - len(out)
            end = self.buf.find(b"\n", self.pos, self.pos + want)
            if end < 0:
                chunk = self.buf[self.pos:self.pos + want]
                self.pos += len(chunk)
                out += chunk
                continue
            out += self.buf[self.pos:end + 1]
            self.pos = end + 1
            break
        return bytes(out)

    def flush(self):
        return 0

    def close(self):
        self.closed = True
        self.buf = b""
        self.pos = 0
        self.pushback = None
        return 0


class OutputChannel(object):
    """Buffered writer over a sink.

    ``sink(data)`` sends data, ``end()`` sends the end-of-stream
    marker when the channel is closed. Unless ``end_when_empty`` is
    set, the marker is only sent if anything was written.
    """

    seen_eof = False

    def __init__(self, sink, end=None, bufsize=8192, end_when_empty=True):
        self.sink = sink
        self.end = end
        self.bufsize = bufsize
        self.end_when_empty = end_when_empty
        self.buf = bytearray()
        self.written = 0
        self.closed = False
        self.error = 0

    def _send(self, func, *args):
        try:
            func(*args)
        except (StreamError, OSError) as e:
            self.error = _error_code(e)
            return False
        return True

    def write(self, data):
        if self.closed or self.error:
            return -1

        self.buf += data
        self.written += len(data)
        if len(self.buf) >= self.bufsize and self.flush() < 0:
            return -1
        return len(data)

    def putc(self, c):
        if self.write(bytes([c])) < 0:
            return -1
        return c

    def flush(self):
        if self.error:
            return -1
        if self.buf:
            data = bytes(self.buf)
            self.buf.clear()
            if not self._send(self.sink, data):
                return -1
        return 0

    def close(self):
        if self.closed:
            return 0

        ret = self.flush()
        self.closed = True
        if ret < 0 or self.end is None:
            return ret
        if not self.written and not self.end_when_empty:
            return 0
        if not self._send(self.end):
            return -1
        return 0
