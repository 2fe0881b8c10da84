#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

"""Pytest configuration for fcgiworker tests."""

import os
import sys

import pytest

# Add the project root to sys.path so test support modules can be imported
# as 'tests.support'
root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if root_dir not in sys.path:
    sys.path.insert(0, root_dir)


@pytest.fixture(autouse=True)
def no_systemd_activation(monkeypatch):
    monkeypatch.delenv("LISTEN_PID", raising=False)
    monkeypatch.delenv("LISTEN_FDS", raising=False)
