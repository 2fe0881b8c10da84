#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

import errno
import os
import socket
from unittest import mock

import pytest

from fcgiworker import sock
from fcgiworker.config import Config


def test_create_tcp_listener():
    conf = Config(bind="127.0.0.1:0")
    listener = sock.create_listener(conf, mock.Mock())
    try:
        assert isinstance(listener, sock.TCPSocket)
        assert not listener.inherited
        assert listener.sock.getblocking() is False
        host, port = listener.getsockname()
        assert host == "127.0.0.1"
        assert port > 0
        assert str(listener) == "tcp://127.0.0.1:%d" % port
    finally:
        sock.close_listener(listener)


def test_create_unix_listener(tmp_path):
    path = str(tmp_path / "fcgi.sock")
    conf = Config(bind="unix:" + path)
    listener = sock.create_listener(conf, mock.Mock())
    assert isinstance(listener, sock.UnixSocket)
    assert os.path.exists(path)
    assert str(listener) == "unix:" + path

    sock.close_listener(listener)
    assert listener.sock is None
    assert not os.path.exists(path)


def test_unix_listener_replaces_stale_socket(tmp_path):
    path = str(tmp_path / "fcgi.sock")
    stale = socket.socket(socket.AF_UNIX)
    stale.bind(path)
    stale.close()

    listener = sock.create_listener(Config(bind="unix:" + path), mock.Mock())
    sock.close_listener(listener)


def test_unix_listener_refuses_regular_file(tmp_path):
    path = tmp_path / "not-a-socket"
    path.write_text("data")
    with pytest.raises(ValueError):
        sock.create_listener(Config(bind="unix:%s" % path), mock.Mock())


def test_address_in_use_is_logged():
    taken = socket.socket()
    taken.bind(("127.0.0.1", 0))
    taken.listen(1)
    try:
        port = taken.getsockname()[1]
        log = mock.Mock()
        with pytest.raises(OSError) as exc_info:
            sock.create_listener(Config(bind="127.0.0.1:%d" % port), log)
        assert exc_info.value.errno == errno.EADDRINUSE
        log.error.assert_called_once_with("Connection in use: %s",
                                          ("127.0.0.1", port))
    finally:
        taken.close()


def test_adopt_inherited_descriptor():
    server = socket.socket()
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        conf = Config(listen_fd=server.fileno())
        listener = sock.create_listener(conf, mock.Mock())
        assert isinstance(listener, sock.TCPSocket)
        assert listener.inherited
        assert listener.fileno() == server.fileno()
        assert listener.getsockname() == server.getsockname()
        listener.sock.detach()
    finally:
        server.close()


def test_adopt_explicit_fd():
    server = socket.socket()
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        listener = sock.create_listener(Config(), mock.Mock(),
                                        fd=server.fileno())
        assert listener.inherited
        listener.sock.detach()
    finally:
        server.close()


def test_inherited_unix_socket_not_unlinked(tmp_path):
    path = str(tmp_path / "fcgi.sock")
    server = socket.socket(socket.AF_UNIX)
    server.bind(path)
    server.listen(1)
    fd = os.dup(server.fileno())
    server.close()

    listener = sock.create_listener(Config(bind="fd://%d" % fd), mock.Mock())
    assert isinstance(listener, sock.UnixSocket)
    sock.close_listener(listener)
    assert os.path.exists(path)


def test_inherited_fd_from_systemd(monkeypatch):
    monkeypatch.setenv("LISTEN_PID", str(os.getpid()))
    monkeypatch.setenv("LISTEN_FDS", "1")
    assert sock.inherited_fd(Config(listen_fd=7)) == sock.SD_LISTEN_FDS_START
    assert "LISTEN_FDS" not in os.environ


def test_inherited_fd_default():
    assert sock.inherited_fd(Config()) == 0
    assert sock.inherited_fd(Config(listen_fd=5)) == 5


def test_is_listening():
    server = socket.socket()
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        assert sock.is_listening(server.fileno())
        # the probe leaves the descriptor open
        assert server.fileno() >= 0
        server.getsockname()
    finally:
        server.close()


def test_is_listening_connected_socket():
    a, b = socket.socketpair()
    try:
        assert not sock.is_listening(a.fileno())
    finally:
        a.close()
        b.close()


def test_is_listening_pipe():
    r, w = os.pipe()
    try:
        assert not sock.is_listening(r)
    finally:
        os.close(r)
        os.close(w)


def test_unknown_address_type():
    with pytest.raises(TypeError):
        sock._sock_type(1.5)
