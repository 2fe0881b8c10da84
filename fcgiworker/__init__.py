#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

version_info = (1, 0, 0)
__version__ = ".".join([str(v) for v in version_info])
SERVER = "fcgiworker"
SERVER_SOFTWARE = "%s/%s" % (SERVER, __version__)

from fcgiworker.acceptor import (  # noqa: E402
    Acceptor,
    accept,
    each,
    each_request,
    is_cgi,
)

__all__ = [
    'Acceptor',
    'accept',
    'each',
    'each_request',
    'is_cgi',
]
