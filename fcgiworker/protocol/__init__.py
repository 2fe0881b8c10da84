#
# This file is part of fcgiworker released under the MIT license.
# See the NOTICE for more information.

from fcgiworker.protocol.record import (
    Record,
    read_record,
    decode_pairs,
    encode_pair,
)
from fcgiworker.protocol.channel import InputChannel, OutputChannel
from fcgiworker.protocol.connection import Connection

__all__ = [
    'Record',
    'read_record',
    'decode_pairs',
    'encode_pair',
    'InputChannel',
    'OutputChannel',
    'Connection',
]
