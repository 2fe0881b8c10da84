#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

from fcgiworker import util
from fcgiworker.errors import CallSeqError, CALL_SEQ_ERROR, stream_error

NEWLINE = b"\n"
NIL = b"nil"
RECURSIVE_SEQUENCE = b"[...]"

# bytes requested from the channel per line fragment
LINE_CHUNK = 8192


class Stream(object):
    """One direction (``in``, ``out`` or ``err``) of a FastCGI request.

    A stream is usable while it is open and its request has not been
    finished. Both conditions are checked before every operation and a
    violation raises ``CallSeqError``. Transport faults recorded by the
    underlying channel are raised as ``StreamError`` or one of its
    subclasses.
    """

    def __init__(self, channel, live, direction, cfg=None):
        self._channel = channel
        self._live = live
        self.direction = direction
        self._closed = False
        self._eof = False

        if cfg is not None:
            self.encoding = cfg.stream_encoding
            self.output_field_separator = cfg.output_field_separator
            self.output_record_separator = cfg.output_record_separator
            self.read_chunk_size = cfg.read_chunk_size
        else:
            self.encoding = "utf-8"
            self.output_field_separator = None
            self.output_record_separator = None
            self.read_chunk_size = util.CHUNK_SIZE

    def __repr__(self):
        if self._closed:
            state = "closed"
        elif not self._live.alive:
            state = "detached"
        else:
            state = "active"
        return "<Stream %s %s>" % (self.direction, state)

    @property
    def closed(self):
        return self._closed

    @property
    def error(self):
        """Last error code recorded by the channel, 0 if none."""
        return self._channel.error

    def _check(self):
        if self._closed:
            raise CallSeqError("stream is closed")
        if not self._live.alive:
            raise CallSeqError(
                "stream invalid as fastcgi request is already finished")

    def _check_error(self):
        if self._channel.error:
            raise stream_error(self._channel.error)

    def _fail(self):
        # a channel refusing work without an error code was closed underneath
        raise stream_error(self._channel.error or CALL_SEQ_ERROR)

    def _note_eof(self):
        if self._channel.seen_eof:
            self._eof = True

    def _to_bytes(self, value):
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value)
        if not isinstance(value, str):
            value = str(value)
        return value.encode(self.encoding)

    def _byte_value(self, c):
        if isinstance(c, (str, bytes, bytearray)):
            c = self._to_bytes(c)
            if len(c) != 1:
                raise ValueError("expected a single byte, got %r" % c)
            return c[0]
        c = int(c)
        if not 0 <= c <= 255:
            raise ValueError("byte must be in range(0, 256)")
        return c

    # output

    def putc(self, c):
        """Write a single byte and return its value."""
        self._check()
        c = self._byte_value(c)
        if self._channel.putc(c) < 0:
            self._fail()
        return c

    def write(self, data):
        """Write ``data`` and return the number of bytes accepted.

        ``str`` is encoded with the stream encoding, anything else that
        is not bytes is converted with ``str()`` first.
        """
        self._check()
        data = self._to_bytes(data)
        written = self._channel.write(data)
        if written < 0:
            self._fail()
        return written

    def __lshift__(self, data):
        self.write(data)
        return self

    def print(self, *values):
        """Write values joined by ``output_field_separator``.

        ``None`` is written as ``nil``. ``output_record_separator`` is
        written once at the end when set.
        """
        self._check()
        fs = self.output_field_separator
        for i, value in enumerate(values):
            if fs is not None and i > 0:
                self.write(fs)
            self.write(NIL if value is None else value)
        if self.output_record_separator is not None:
            self.write(self.output_record_separator)

    def printf(self, fmt, *args):
        self.write(fmt % args)

    def puts(self, *values):
        """Write each value on its own line.

        Lists and tuples are flattened, a sequence that contains itself
        is written as ``[...]``. Without arguments a single newline is
        written.
        """
        self._check()
        if not values:
            self.write(NEWLINE)
            return
        self._puts(values, set())

    def _puts(self, values, in_progress):
        for value in values:
            if isinstance(value, (list, tuple)):
                if id(value) in in_progress:
                    self._puts_line(RECURSIVE_SEQUENCE)
                    continue
                in_progress.add(id(value))
                try:
                    self._puts(value, in_progress)
                finally:
                    in_progress.discard(id(value))
            elif value is None:
                self._puts_line(NIL)
            else:
                self._puts_line(value)

    def _puts_line(self, value):
        line = self._to_bytes(value)
        self.write(line)
        if not line.endswith(NEWLINE):
            self.write(NEWLINE)

    def flush(self):
        self._check()
        if self._channel.flush() < 0:
            self._fail()

    # input

    def getc(self):
        """Read one byte. Returns an int, or None at end of input."""
        self._check()
        c = self._channel.getc()
        if c < 0:
            self._check_error()
            self._note_eof()
            return None
        return c

    def ungetc(self, c):
        """Push one byte back in front of the input.

        Only one byte of pushback is kept. Returns the byte, or None if
        a byte is already pushed back.
        """
        self._check()
        c = self._byte_value(c)
        if self._channel.ungetc(c) < 0:
            self._check_error()
            return None
        return c

    def gets(self):
        """Read a line including its newline. None at end of input."""
        self._check()
        line = bytearray()
        while True:
            chunk = self._channel.readline(LINE_CHUNK)
            if not chunk:
                self._check_error()
                break
            line += chunk
            if chunk.endswith(NEWLINE):
                break
        self._note_eof()
        if not line:
            return None
        return bytes(line)

    readline = gets

    def __iter__(self):
        return self

    def __next__(self):
        line = self.gets()
        if line is None:
            raise StopIteration
        return line

    def read(self, size=None):
        """Read up to ``size`` bytes, or everything when size is None.

        Returns None when nothing could be read before end of input.
        """
        self._check()
        if size is None:
            return self._read_all()

        if size < 0:
            raise ValueError("negative length %d given" % size)
        if size == 0:
            return b""

        data = self._channel.read(size)
        self._check_error()
        self._note_eof()
        return data or None

    def _read_all(self):
        chunks = []
        while True:
            data = self._channel.read(self.read_chunk_size)
            self._check_error()
            if not data:
                break
            chunks.append(data)
        self._note_eof()
        if not chunks:
            return None
        return b"".join(chunks)

    def eof(self):
        return self._eof

    def close(self):
        """Close this direction only. Output streams end their record stream."""
        self._check()
        self._closed = True
        if self._channel.close() < 0:
            self._fail()

    # io compatibility

    def binmode(self):
        return self

    def isatty(self):
        return False

    @property
    def sync(self):
        return False

    @sync.setter
    def sync(self, value):
        pass
