#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import socket

try:
    import gevent
except ImportError:
    raise RuntimeError("gevent waiter requires gevent 1.4 or higher")
else:
    from packaging.version import parse as parse_version
    if parse_version(gevent.__version__) < parse_version('1.4'):
        raise RuntimeError("gevent waiter requires gevent 1.4 or higher")

from gevent.socket import wait_read

from fcgiworker.waiters import base


class GeventWaiter(base.Waiter):
    """\
    Waits on the listen socket through the gevent hub so other greenlets
    keep running while this worker has nothing to do.
    """

    @classmethod
    def setup(cls):
        from gevent import monkey
        monkey.patch_socket()
        monkey.patch_select()

    def wait_readable(self, sock, timeout=None):
        try:
            fd = sock.fileno()
        except OSError:
            return False
        if fd < 0:
            return False

        try:
            wait_read(fd, timeout=timeout)
        except socket.timeout:
            return False
        except OSError as e:
            # closed from another greenlet
            if e.errno == errno.EBADF:
                return False
            raise
        return True
