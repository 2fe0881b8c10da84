#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import types
from datetime import datetime

from fcgiworker.errors import ProtocolError
from fcgiworker.stream import Stream


class Liveness(object):
    """Flag shared by a request and its streams, cleared by finish()."""

    __slots__ = ("alive",)

    def __init__(self):
        self.alive = True


def parse_environ(entries):
    """Build the environment mapping from ``NAME=VALUE`` byte entries.

    Entries are split at the first ``=``. Later duplicates win. An entry
    without ``=`` raises ProtocolError.
    """
    environ = {}
    for entry in entries:
        name, sep, value = entry.partition(b"=")
        if not sep:
            raise ProtocolError("malformed environment entry %r" % entry[:64])
        environ[name.decode("latin-1")] = value.decode("latin-1")
    return environ


class Request(object):
    """An accepted FastCGI request.

    The request owns its three streams. ``finish()`` detaches them all
    at once, ends the request on the wire and releases the connection.
    """

    def __init__(self, conn, environ, cfg, log):
        self.conn = conn
        self.cfg = cfg
        self.log = log
        self.start = datetime.now()
        self.request_id = conn.request_id
        self.role = conn.role
        self.keep_conn = conn.keep_conn

        self._environ = environ
        self._environ_view = types.MappingProxyType(environ)
        self._live = Liveness()

        bufsize = cfg.output_buffer_size
        self._in_channel = conn.stdin_channel()
        self._out_channel = conn.stdout_channel(bufsize)
        self._err_channel = conn.stderr_channel(bufsize)

        self._stdin = Stream(self._in_channel, self._live, "in", cfg)
        self._stdout = Stream(self._out_channel, self._live, "out", cfg)
        self._stderr = Stream(self._err_channel, self._live, "err", cfg)

    def __repr__(self):
        return "<Request id=%s %s>" % (
            self.request_id, "finished" if self.finished else "active")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.finish()

    @property
    def stdin(self):
        return self._stdin

    @property
    def stdout(self):
        return self._stdout

    @property
    def stderr(self):
        return self._stderr

    @property
    def environ(self):
        return self._environ_view

    @property
    def finished(self):
        return not self._live.alive

    @property
    def aborted(self):
        return self.conn.aborted

    @property
    def response_length(self):
        """Bytes written to stdout so far."""
        return self._out_channel.written

    def finish(self, app_status=0):
        """End the request.

        Returns False if the request was already finished.
        """
        if not self._live.alive:
            return False
        self._live.alive = False

        try:
            self._in_channel.close()
            # error output goes first so it is not lost behind END_REQUEST
            for channel in (self._err_channel, self._out_channel):
                channel.close()

            codes = [c.error for c in (self._err_channel, self._out_channel)
                     if c.error]
            if codes:
                self._log_teardown_error(codes[0])
            else:
                self.conn.end_request(app_status)
        except OSError as e:
            self._log_teardown_error(e.errno or errno.EIO)
        finally:
            self.conn.close()
            self.log.access(self, datetime.now() - self.start)
        return True

    def _log_teardown_error(self, code):
        if code in (errno.EPIPE, errno.ECONNRESET, errno.ENOTCONN):
            self.log.debug("Web server went away before request %s ended",
                           self.request_id)
        else:
            self.log.error("Error ending request %s: %s", self.request_id,
                           errno.errorcode.get(code, code))
