#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

# supported waiters
SUPPORTED_WAITERS = {
    "sync": "fcgiworker.waiters.sync.SelectWaiter",
    "gevent": "fcgiworker.waiters.ggevent.GeventWaiter",
}
