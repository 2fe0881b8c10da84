#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.


class SocketReader(object):
    """Reads records off a socket in exact amounts.

    Whatever ``recv`` returns beyond the requested size is kept for the
    next read.
    """

    def __init__(self, sock, max_chunk=8192):
        self.sock = sock
        self.max_chunk = max_chunk
        self.buf = bytearray()

    def read(self, size):
        """Return ``size`` bytes, fewer only when the peer hung up."""
        while len(self.buf) < size:
            chunk = self.sock.recv(self.max_chunk)
            if not chunk:
                break
            self.buf += chunk
        data = bytes(self.buf[:size])
        del self.buf[:size]
        return data
