#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.


class Waiter(object):
    """\
    Strategy used by the acceptor to wait until the listen socket is
    readable. This is the only place where a worker process suspends
    while it has no request to serve.
    """

    def __init__(self, cfg, log):
        self.cfg = cfg
        self.log = log

    @classmethod
    def setup(cls):
        """Hook called once when the class is loaded from the config."""

    def wait_readable(self, sock, timeout=None):
        """\
        Block until ``sock`` is readable. Return False when the socket
        was closed or became invalid while (or before) waiting, or when
        ``timeout`` expired.
        """
        raise NotImplementedError()
