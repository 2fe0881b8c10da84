#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

"""Requests served without a FastCGI-aware web server.

When the process was started as a plain CGI program there is exactly
one request: input on stdin, output on stdout and stderr and the
environment in ``os.environ``.
"""

import os
import sys

from fcgiworker import util
from fcgiworker.protocol.channel import InputChannel, OutputChannel
from fcgiworker.protocol.constants import FCGI_RESPONDER


class CGIConnection(object):
    """Connection look-alike over the process standard streams."""

    request_id = 1
    role = FCGI_RESPONDER
    keep_conn = False
    aborted = False
    addr = None

    def __init__(self, stdin=None, stdout=None, stderr=None, environ=None):
        self.stdin = stdin if stdin is not None else sys.stdin.buffer
        self.stdout = stdout if stdout is not None else sys.stdout.buffer
        self.stderr = stderr if stderr is not None else sys.stderr.buffer
        if environ is None:
            environ = os.environb
        self.params = [name + b"=" + value for name, value in environ.items()]

    def __str__(self):
        return "<CGIConnection>"

    def read_stdin(self):
        read = getattr(self.stdin, "read1", self.stdin.read)
        return read(util.CHUNK_SIZE)

    def stdin_channel(self):
        return InputChannel(self.read_stdin)

    def stdout_channel(self, bufsize):
        return OutputChannel(self.stdout.write, self.stdout.flush, bufsize)

    def stderr_channel(self, bufsize):
        return OutputChannel(self.stderr.write, self.stderr.flush, bufsize)

    def end_request(self, app_status=0, protocol_status=None):
        self.stdout.flush()
        self.stderr.flush()

    def close(self):
        # the standard streams belong to the process
        pass
