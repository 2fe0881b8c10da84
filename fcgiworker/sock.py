#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import os
import socket
import stat

from fcgiworker import util
from fcgiworker.systemd import listen_fds, SD_LISTEN_FDS_START


class BaseSocket(object):

    def __init__(self, address, conf, log, fd=None):
        self.log = log
        self.conf = conf

        self.cfg_addr = address
        if fd is None:
            sock = socket.socket(self.FAMILY, socket.SOCK_STREAM)
            bound = False
        else:
            # the descriptor stays where the web server put it
            sock = socket.socket(fileno=fd)
            bound = True

        self.inherited = bound
        self.sock = self.set_options(sock, bound=bound)

    def __str__(self):
        return "<socket %d>" % self.sock.fileno()

    def __getattr__(self, name):
        return getattr(self.sock, name)

    def set_options(self, sock, bound=False):
        if not bound:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.bind(sock)
            sock.listen(self.conf.backlog)
        sock.setblocking(False)
        return sock

    def bind(self, sock):
        sock.bind(self.cfg_addr)

    def close(self):
        if self.sock is None:
            return

        try:
            self.sock.close()
        except OSError as e:
            self.log.info("Error while closing socket %s", e)

        self.sock = None


class TCPSocket(BaseSocket):

    FAMILY = socket.AF_INET

    def __str__(self):
        addr = self.sock.getsockname()
        return "tcp://%s:%d" % (addr[0], addr[1])

    def set_options(self, sock, bound=False):
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return super().set_options(sock, bound=bound)


class TCP6Socket(TCPSocket):

    FAMILY = socket.AF_INET6

    def __str__(self):
        (host, port, _, _) = self.sock.getsockname()
        return "tcp://[%s]:%d" % (host, port)


class UnixSocket(BaseSocket):

    FAMILY = socket.AF_UNIX

    def __init__(self, addr, conf, log, fd=None):
        if fd is None:
            try:
                st = os.stat(addr)
            except OSError as e:
                if e.args[0] != errno.ENOENT:
                    raise
            else:
                if stat.S_ISSOCK(st.st_mode):
                    os.remove(addr)
                else:
                    raise ValueError("%r is not a socket" % addr)
        super().__init__(addr, conf, log, fd=fd)

    def __str__(self):
        return "unix:%s" % self.cfg_addr


def _sock_type(addr):
    if isinstance(addr, tuple):
        if util.is_ipv6(addr[0]):
            sock_type = TCP6Socket
        else:
            sock_type = TCPSocket
    elif isinstance(addr, (str, bytes)):
        sock_type = UnixSocket
    else:
        raise TypeError("Unable to create socket from: %r" % addr)
    return sock_type


def inherited_fd(conf):
    """The descriptor of the listen socket handed to this process."""
    if listen_fds() >= 1:
        return SD_LISTEN_FDS_START
    return conf.listen_fd


def from_fd(fd, conf, log):
    sock = socket.socket(fileno=fd)
    try:
        sock_name = sock.getsockname()
    finally:
        sock.detach()
    return _sock_type(sock_name)(sock_name, conf, log, fd=fd)


def create_listener(conf, log, fd=None):
    """
    Return the listen socket to accept requests on.

    A configured ``bind`` address is bound and listened on, a TCP socket
    for a (host, port) tuple, a Unix socket for a path. An ``fd://``
    address or no address at all adopts an existing descriptor, ``fd``
    if given.
    """
    addr = conf.address
    if addr is None:
        if fd is None:
            fd = inherited_fd(conf)
        return from_fd(fd, conf, log)
    if isinstance(addr, int):
        return from_fd(addr, conf, log)

    sock_type = _sock_type(addr)
    try:
        return sock_type(addr, conf, log)
    except OSError as e:
        if e.args[0] == errno.EADDRINUSE:
            log.error("Connection in use: %s", addr)
        if e.args[0] == errno.EADDRNOTAVAIL:
            log.error("Invalid address: %s", addr)
        raise


def close_listener(listener, unlink=True):
    sock_name = listener.getsockname()
    listener.close()
    if unlink and not listener.inherited and _sock_type(sock_name) is UnixSocket:
        os.unlink(sock_name)


def is_listening(fd):
    """
    Whether ``fd`` is a socket without a peer, which is how a FastCGI
    web server hands over its listen socket. Anything else (a pipe, a
    terminal, a connected socket) means the process runs as plain CGI.
    """
    try:
        sock = socket.socket(fileno=fd)
    except OSError:
        return False
    try:
        sock.getpeername()
    except OSError as e:
        return e.errno == errno.ENOTCONN
    finally:
        sock.detach()
    return False
