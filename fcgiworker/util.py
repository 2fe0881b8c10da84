#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import fcntl
import importlib
import inspect
import os
import socket
import time

from fcgiworker.waiters import SUPPORTED_WAITERS

CHUNK_SIZE = (16 * 1024)

monthname = [None,
             'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
             'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']

BUILTIN_CLASSES = {
    "fcgiworker.waiters": SUPPORTED_WAITERS,
    "fcgiworker.loggers": {"simple": "fcgiworker.glogging.Logger"},
}


def load_class(uri, default="sync", section="fcgiworker.waiters"):
    if inspect.isclass(uri):
        return uri

    builtins = BUILTIN_CLASSES.get(section, {})
    uri = builtins.get(uri or default, uri)

    components = uri.split('.')
    if len(components) == 1:
        raise RuntimeError("class uri %r invalid or not found" % uri)

    klass = components.pop(-1)
    try:
        mod = importlib.import_module('.'.join(components))
    except ImportError as e:
        raise RuntimeError("class uri %r invalid or not found: %s"
                           % (uri, e))
    try:
        return getattr(mod, klass)
    except AttributeError:
        raise RuntimeError("class uri %r invalid or not found" % uri)


def is_ipv6(addr):
    try:
        socket.inet_pton(socket.AF_INET6, addr)
    except (OSError, ValueError):  # not a valid address
        return False
    return True


def parse_address(netloc, default_port=9000):
    if isinstance(netloc, bytes):
        netloc = netloc.decode('latin-1')

    if netloc.startswith("unix://"):
        return netloc.split("unix://")[1]

    if netloc.startswith("unix:"):
        return netloc.split("unix:")[1]

    if netloc.startswith("fd://"):
        fd = netloc[5:]
        try:
            return int(fd)
        except ValueError:
            raise RuntimeError("%r is not a valid file descriptor." % fd)

    # get host
    if '[' in netloc and ']' in netloc:
        host = netloc.split(']')[0][1:].lower()
    elif ':' in netloc:
        host = netloc.split(':')[0].lower()
    elif netloc == "":
        host = "0.0.0.0"
    else:
        host = netloc.lower()

    # get port
    netloc = netloc.split(']')[-1]
    if ":" in netloc:
        port = netloc.split(':', 1)[1]
        if not port.isdigit():
            raise RuntimeError("%r is not a valid port number." % port)
        port = int(port)
    else:
        port = default_port
    return (host, port)


def close_on_exec(fd):
    flags = fcntl.fcntl(fd, fcntl.F_GETFD)
    flags |= fcntl.FD_CLOEXEC
    fcntl.fcntl(fd, fcntl.F_SETFD, flags)


def set_blocking(fd):
    """Clear O_NONBLOCK on ``fd`` if it is set."""
    flags = fcntl.fcntl(fd, fcntl.F_GETFL)
    if flags & os.O_NONBLOCK:
        fcntl.fcntl(fd, fcntl.F_SETFL, flags & ~os.O_NONBLOCK)


def close(sock):
    try:
        sock.close()
    except OSError:
        pass


def to_bytestring(value, encoding="utf8"):
    """Converts a string argument to a byte string"""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise TypeError('%r is not a string' % value)

    return value.encode(encoding)


def check_is_writable(path):
    try:
        with open(path, 'a') as f:
            f.close()
    except OSError as e:
        raise RuntimeError("Error: '%s' isn't writable [%r]" % (path, e))


def log_date(timestamp=None):
    """Return a date in Apache Common Log Format."""
    if timestamp is None:
        timestamp = time.time()
    now = time.localtime(timestamp)
    return '[%02d/%s/%04d:%02d:%02d:%02d]' % (
        now.tm_mday, monthname[now.tm_mon], now.tm_year,
        now.tm_hour, now.tm_min, now.tm_sec)


positionals = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
)


def get_arity(f):
    sig = inspect.signature(f)
    arity = 0

    for param in sig.parameters.values():
        if param.kind in positionals:
            arity += 1

    return arity
