"""Pre-built outbound LLRP commands.

The session only ever sends these six messages, so they are encoded once at
import time and written to the socket as-is.
"""

from binascii import unhexlify
from types import MappingProxyType

from .llrp_decoder import msg_header_encode
from .llrp_proto import Message_Name2Type, VER_PROTO_V1

__all__ = [
    "build_message",
    "CATALOG",
    "SET_READER_CONFIG",
    "ENABLE_EVENTS_AND_REPORTS",
    "ADD_ROSPEC",
    "ENABLE_ROSPEC",
    "START_ROSPEC",
    "KEEPALIVE_ACK",
]

ROSPEC_ID = 1


def build_message(name, body=b'', msgid=0, version=VER_PROTO_V1):
    """Return the bytes of message `name` carrying the encoded `body`."""
    msgtype = Message_Name2Type[name]
    return msg_header_encode(msgtype, version, len(body), msgid) + body


# ResetToFactoryDefaults=0, then EventsAndReports with
# HoldEventsAndReportsUponReconnect set.
SET_READER_CONFIG_BODY = unhexlify('00' '00e2000580')

# ROSpec 1: null start/stop triggers, one AISpec on all antennas stopped after
# 1000ms, report at the end of each AISpec with a TagReportContentSelector,
# C1G2EPCMemorySelector and a vendor custom parameter.
ADD_ROSPEC_BODY = unhexlify(
    '00b1005300000001' '0000'
    '00b20012' '00b3000500' '00b600090000000000'
    '00b7001800010000' '00b8000901000003e8' '00ba0007000101'
    '00ed001f010000' '00ee000bffc0' '015c0005c0'
    '03ff000d000067ba0000008e01')

ROSPEC_ID_BODY = ROSPEC_ID.to_bytes(4, 'big')


SET_READER_CONFIG = build_message('SET_READER_CONFIG', SET_READER_CONFIG_BODY)
ENABLE_EVENTS_AND_REPORTS = build_message('ENABLE_EVENTS_AND_REPORTS')
ADD_ROSPEC = build_message('ADD_ROSPEC', ADD_ROSPEC_BODY)
ENABLE_ROSPEC = build_message('ENABLE_ROSPEC', ROSPEC_ID_BODY)
START_ROSPEC = build_message('START_ROSPEC', ROSPEC_ID_BODY)
KEEPALIVE_ACK = build_message('KEEPALIVE_ACK')

CATALOG = MappingProxyType({
    'SET_READER_CONFIG': SET_READER_CONFIG,
    'ENABLE_EVENTS_AND_REPORTS': ENABLE_EVENTS_AND_REPORTS,
    'ADD_ROSPEC': ADD_ROSPEC,
    'ENABLE_ROSPEC': ENABLE_ROSPEC,
    'START_ROSPEC': START_ROSPEC,
    'KEEPALIVE_ACK': KEEPALIVE_ACK,
})
