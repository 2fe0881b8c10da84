#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.
#
# Echo the request body back, or greet on anything but POST.
#
# Usage:
#
#     $ spawn-fcgi -p 9000 -n -- python examples/echo.py
#
# or without a FastCGI web server, as a plain CGI program:
#
#     $ echo hello | REQUEST_METHOD=POST python examples/echo.py

import fcgiworker
from fcgiworker import __version__


def handle(req):
    """Simplest possible handler"""

    if req.environ.get('REQUEST_METHOD', 'GET').upper() != 'POST':
        data = b'Hello, World!\n'
    else:
        data = req.stdin.read() or b''

    out = req.stdout
    out.write('Content-type: text/plain\r\n')
    out.printf('Content-Length: %d\r\n', len(data))
    out.write('X-Fcgiworker-Version: %s\r\n\r\n' % __version__)
    out.write(data)
    req.finish()


if __name__ == '__main__':
    fcgiworker.each(handle)
