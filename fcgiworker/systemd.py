#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import os

SD_LISTEN_FDS_START = 3

_ACTIVATION_VARS = ("LISTEN_PID", "LISTEN_FDS")


def _env_int(name):
    try:
        return int(os.environ[name])
    except (KeyError, ValueError):
        return 0


def listen_fds(unset_environment=True):
    """Number of listen sockets systemd passed to this process.

    The sockets start at descriptor ``SD_LISTEN_FDS_START``. Nothing was
    passed unless ``LISTEN_PID`` names this process, in which case the
    activation variables are removed as well, unless
    ``unset_environment`` is false.
    """
    if _env_int("LISTEN_PID") != os.getpid():
        return 0

    count = _env_int("LISTEN_FDS")
    if unset_environment:
        for name in _ACTIVATION_VARS:
            os.environ.pop(name, None)
    return count
