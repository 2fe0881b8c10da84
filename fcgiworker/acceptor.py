#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import os

from fcgiworker import sock
from fcgiworker import util
from fcgiworker.cgimode import CGIConnection
from fcgiworker.config import Config
from fcgiworker.errors import InitError, StreamError
from fcgiworker.protocol.connection import Connection
from fcgiworker.request import Request, parse_environ

# accept() failures that only mean another worker got there first
RETRY_ERRORS = (errno.EAGAIN, errno.EWOULDBLOCK, errno.ECONNABORTED,
                errno.EINTR)


class Acceptor(object):
    """Hands out FastCGI requests, one at a time.

    ::

        acceptor = Acceptor()
        for req in acceptor:
            req.stdout.write(b"Content-Type: text/plain\\r\\n\\r\\nhello")
            req.finish()
    """

    def __init__(self, cfg=None, log=None):
        self.cfg = cfg if cfg is not None else Config()
        self.log = log if log is not None else self.cfg.logger_class(self.cfg)
        self.listener = None
        self.waiter = None
        self.initialized = False
        self.cgi_served = False
        self._listen_fd = None
        self._cgi = None

    def __repr__(self):
        return "<Acceptor listener=%s cgi=%s>" % (self.listener, self._cgi)

    def __iter__(self):
        while True:
            req = self.accept()
            if req is None:
                return
            yield req

    def listen_fd(self):
        if self._listen_fd is None:
            self._listen_fd = sock.inherited_fd(self.cfg)
        return self._listen_fd

    def is_cgi(self):
        """Whether the process was started as a plain CGI program."""
        if self._cgi is None:
            if self.cfg.bind is not None:
                self._cgi = False
            else:
                self._cgi = not sock.is_listening(self.listen_fd())
        return self._cgi

    def init(self):
        """Load the waiter and open the listen socket. Runs once."""
        if self.initialized:
            return

        try:
            waiter_class = self.cfg.waiter_class
        except RuntimeError as e:
            raise InitError(str(e))
        self.waiter = waiter_class(self.cfg, self.log)

        if not self.is_cgi():
            try:
                self.listener = sock.create_listener(self.cfg, self.log,
                                                     fd=self.listen_fd())
            except (OSError, ValueError, TypeError, RuntimeError) as e:
                raise InitError(str(e))
            self.log.debug("Accepting requests on %s (%s)", self.listener,
                           os.getpid())
        self.initialized = True

    def accept(self):
        """Wait for the next request.

        Returns a Request, or None when no more requests will come: the
        listen socket was closed or failed, or the single CGI request was
        already handed out.
        """
        self.init()
        if self.is_cgi():
            return self.accept_cgi()

        while True:
            if self.listener is None or self.listener.sock is None:
                return None

            if not self.waiter.wait_readable(self.listener.sock):
                self.log.debug("Listen socket closed, no more requests")
                return None

            try:
                client, addr = self.listener.sock.accept()
            except OSError as e:
                if e.errno in RETRY_ERRORS:
                    continue
                self.log.error("accept() failed on %s: %s", self.listener, e)
                return None

            req = self.start_request(client, addr)
            if req is not None:
                return req

    def accept_cgi(self):
        if self.cgi_served:
            return None
        self.cgi_served = True

        conn = CGIConnection()
        return Request(conn, parse_environ(conn.params), self.cfg, self.log)

    def is_allowed(self, addr):
        allowed = self.cfg.web_server_addrs
        if not allowed or not isinstance(addr, tuple):
            return True
        return addr[0] in allowed

    def start_request(self, client, addr):
        """Read the request head from a fresh connection.

        Returns None, after closing the connection, when the peer is not
        an allowed web server or no valid request could be read.
        """
        if not self.is_allowed(addr):
            self.log.warning("Connection from %s refused", addr[0])
            util.close(client)
            return None

        util.set_blocking(client.fileno())
        util.close_on_exec(client.fileno())

        conn = Connection(client, addr, self.cfg, self.log)
        try:
            if not conn.begin():
                self.log.debug("Connection closed before a request started")
                conn.close()
                return None
            environ = parse_environ(conn.params)
        except StreamError as e:
            self.log.warning("Invalid request from %s: %s", addr, e)
            conn.close()
            return None
        except OSError as e:
            if e.errno in (errno.EPIPE, errno.ECONNRESET):
                self.log.debug("Ignoring %s while reading request",
                               errno.errorcode[e.errno])
            else:
                self.log.exception("Error reading request.")
            conn.close()
            return None

        return Request(conn, environ, self.cfg, self.log)

    def each(self, handler):
        """Call ``handler(req)`` for every request until none are left.

        The handler owns the request and is expected to finish it.
        """
        for req in self:
            self.cfg.pre_request(self, req)
            try:
                handler(req)
            finally:
                self.cfg.post_request(self, req)

    each_request = each

    def close(self):
        if self.listener is not None:
            sock.close_listener(self.listener)
            self.listener = None


_default_acceptor = None


def default_acceptor():
    global _default_acceptor
    if _default_acceptor is None:
        _default_acceptor = Acceptor()
    return _default_acceptor


def accept():
    return default_acceptor().accept()


def each(handler):
    default_acceptor().each(handler)


each_request = each


def is_cgi():
    return default_acceptor().is_cgi()
