#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.
#

import errno
import select

from fcgiworker.waiters import base


class SelectWaiter(base.Waiter):

    def wait_readable(self, sock, timeout=None):
        while True:
            try:
                ret = select.select([sock], [], [], timeout)
            except ValueError:
                # closed socket, fileno() is -1
                return False
            except OSError as e:
                if e.errno == errno.EINTR:
                    continue
                if e.errno == errno.EBADF:
                    return False
                raise
            return bool(ret[0])
