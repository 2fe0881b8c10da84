#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.
#
# Read the request body line by line and echo every line, reporting
# progress on the error stream.
#
# Usage:
#
#     $ python examples/readline.py
#
# with a configured bind address, then point the web server at
# 127.0.0.1:9000.

from fcgiworker import Acceptor
from fcgiworker.config import Config


def main():
    cfg = Config(bind="127.0.0.1:9000", accesslog="-")
    acceptor = Acceptor(cfg)

    for req in acceptor:
        with req:
            req.stdout << "Content-type: text/plain\r\n\r\n"
            for lineno, line in enumerate(req.stdin, 1):
                req.stderr.printf("line %d: %d bytes\n", lineno, len(line))
                req.stdout.write(line)


if __name__ == '__main__':
    main()
