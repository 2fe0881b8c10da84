#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

"""FastCGI protocol constants.

Based on the FastCGI Specification:
https://fastcgi-archives.github.io/FastCGI_Specification.html
"""

# Descriptor of the listen socket handed over by the web server
FCGI_LISTENSOCK_FILENO = 0

# Protocol version
FCGI_VERSION_1 = 1

# Record types
FCGI_BEGIN_REQUEST = 1
FCGI_ABORT_REQUEST = 2
FCGI_END_REQUEST = 3
FCGI_PARAMS = 4
FCGI_STDIN = 5
FCGI_STDOUT = 6
FCGI_STDERR = 7
FCGI_DATA = 8
FCGI_GET_VALUES = 9
FCGI_GET_VALUES_RESULT = 10
FCGI_UNKNOWN_TYPE = 11
FCGI_MAXTYPE = FCGI_UNKNOWN_TYPE

# Roles (in BEGIN_REQUEST)
FCGI_RESPONDER = 1
FCGI_AUTHORIZER = 2
FCGI_FILTER = 3

# Flags (in BEGIN_REQUEST)
FCGI_KEEP_CONN = 1

# Protocol status (in END_REQUEST)
FCGI_REQUEST_COMPLETE = 0
FCGI_CANT_MPX_CONN = 1
FCGI_OVERLOADED = 2
FCGI_UNKNOWN_ROLE = 3

# Header size (8 bytes fixed)
FCGI_HEADER_LEN = 8

# Maximum content length per record (64KB - 1)
FCGI_MAX_CONTENT_LEN = 65535

# Null request ID (for management records)
FCGI_NULL_REQUEST_ID = 0

# Management variables answered in GET_VALUES_RESULT. One connection,
# one request at a time.
FCGI_MAX_CONNS = b'FCGI_MAX_CONNS'
FCGI_MAX_REQS = b'FCGI_MAX_REQS'
FCGI_MPXS_CONNS = b'FCGI_MPXS_CONNS'

MANAGEMENT_VALUES = {
    FCGI_MAX_CONNS: b'1',
    FCGI_MAX_REQS: b'1',
    FCGI_MPXS_CONNS: b'0',
}

# Roles this worker accepts
FCGI_ROLES = {
    FCGI_RESPONDER: b'RESPONDER',
    FCGI_AUTHORIZER: b'AUTHORIZER',
    FCGI_FILTER: b'FILTER',
}

# Record type names for debugging
FCGI_RECORD_TYPES = {
    FCGI_BEGIN_REQUEST: 'BEGIN_REQUEST',
    FCGI_ABORT_REQUEST: 'ABORT_REQUEST',
    FCGI_END_REQUEST: 'END_REQUEST',
    FCGI_PARAMS: 'PARAMS',
    FCGI_STDIN: 'STDIN',
    FCGI_STDOUT: 'STDOUT',
    FCGI_STDERR: 'STDERR',
    FCGI_DATA: 'DATA',
    FCGI_GET_VALUES: 'GET_VALUES',
    FCGI_GET_VALUES_RESULT: 'GET_VALUES_RESULT',
    FCGI_UNKNOWN_TYPE: 'UNKNOWN_TYPE',
}
