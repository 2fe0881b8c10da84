#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import socket
from unittest import mock

import pytest

from fcgiworker.config import Config
from fcgiworker.waiters import base
from fcgiworker.waiters.sync import SelectWaiter


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


def test_base_waiter_is_abstract():
    waiter = base.Waiter(Config(), mock.Mock())
    base.Waiter.setup()
    with pytest.raises(NotImplementedError):
        waiter.wait_readable(None)


def test_select_timeout(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    assert waiter.wait_readable(pair[0], timeout=0) is False


def test_select_readable(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    pair[1].sendall(b"x")
    assert waiter.wait_readable(pair[0], timeout=1) is True


def test_select_closed_socket(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    pair[0].close()
    assert waiter.wait_readable(pair[0]) is False


def test_select_retries_on_eintr(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    calls = [OSError(errno.EINTR, "interrupted"), ([pair[0]], [], [])]

    def fake_select(*args):
        result = calls.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    with mock.patch("select.select", side_effect=fake_select):
        assert waiter.wait_readable(pair[0]) is True
    assert not calls


def test_select_bad_descriptor(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    with mock.patch("select.select",
                    side_effect=OSError(errno.EBADF, "bad fd")):
        assert waiter.wait_readable(pair[0]) is False


def test_select_other_error_propagates(pair):
    waiter = SelectWaiter(Config(), mock.Mock())
    with mock.patch("select.select",
                    side_effect=OSError(errno.ENOMEM, "no memory")):
        with pytest.raises(OSError):
            waiter.wait_readable(pair[0])


def test_gevent_waiter(pair):
    pytest.importorskip("gevent")
    from fcgiworker.waiters.ggevent import GeventWaiter

    waiter = GeventWaiter(Config(), mock.Mock())
    assert waiter.wait_readable(pair[0], timeout=0.01) is False
    pair[1].sendall(b"x")
    assert waiter.wait_readable(pair[0], timeout=1) is True
    pair[0].close()
    assert waiter.wait_readable(pair[0]) is False


def test_gevent_waiter_by_name():
    pytest.importorskip("gevent")
    from fcgiworker.waiters.ggevent import GeventWaiter

    c = Config(waiter="gevent")
    with mock.patch.object(GeventWaiter, "setup") as setup:
        assert c.waiter_class is GeventWaiter
    setup.assert_called_once_with()
