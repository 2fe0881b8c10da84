#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

# We don't need to call super() in __init__ methods of our
# BaseException and Exception classes because we also define
# our own __str__ methods so there is no need to pass 'message'
# to the base class to get a meaningful output from 'str(exc)'.
# pylint: disable=super-init-not-called

import os

# Negative stream error codes, as recorded by the protocol channels.
# Positive codes are plain errno values.
UNSUPPORTED_VERSION = -2
PROTOCOL_ERROR = -3
PARAMS_ERROR = -4
CALL_SEQ_ERROR = -5


class InitError(Exception):
    """The FastCGI layer could not be initialized. Fatal."""

    def __init__(self, msg):
        self.msg = msg

    def __str__(self):
        return "FastCGI initialization failed: %s" % self.msg


class StreamError(IOError):
    """Fault on a request stream.

    ``code`` is the channel error code: an errno value when positive,
    one of the module level protocol codes when negative.
    """

    default_msg = "unknown error"

    def __init__(self, msg=None, code=0):
        self.msg = msg or self.default_msg
        self.code = code

    def __str__(self):
        return self.msg


class UnsupportedVersionError(StreamError):
    default_msg = "unsupported version"

    def __init__(self, msg=None, code=UNSUPPORTED_VERSION):
        super().__init__(msg, code)


class ProtocolError(StreamError):
    default_msg = "protocol error"

    def __init__(self, msg=None, code=PROTOCOL_ERROR):
        super().__init__(msg, code)


class ParamsError(ProtocolError):
    default_msg = "parameter error"

    def __init__(self, msg=None, code=PARAMS_ERROR):
        super().__init__(msg, code)


class CallSeqError(StreamError):
    default_msg = "preconditions are not met"

    def __init__(self, msg=None, code=CALL_SEQ_ERROR):
        super().__init__(msg, code)


_CODE_ERRORS = {
    UNSUPPORTED_VERSION: UnsupportedVersionError,
    PROTOCOL_ERROR: ProtocolError,
    PARAMS_ERROR: ParamsError,
    CALL_SEQ_ERROR: CallSeqError,
}


def stream_error(code):
    """Return the exception matching a channel error code."""
    if code > 0:
        return StreamError("unknown error (syscall error): %s"
                           % os.strerror(code), code)
    error_class = _CODE_ERRORS.get(code)
    if error_class is None:
        return StreamError(code=code)
    return error_class()
