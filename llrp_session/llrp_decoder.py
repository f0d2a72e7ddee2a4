from collections import namedtuple
from struct import Struct, error as StructError

from .llrp_errors import LLRPDecodeError
from .llrp_proto import CONTAINER_PARAM_TYPES
from .log import get_logger

logger = get_logger(__name__)


msg_header_struct = Struct('!HII')
msg_header_size = msg_header_struct.size
msg_header_pack = msg_header_struct.pack
msg_header_unpack = msg_header_struct.unpack

# TV param header: Type
tve_header_struct = Struct('!B')
tve_header_size = tve_header_struct.size
tve_header_unpack = tve_header_struct.unpack

# TLV param header: Type, Size
tlv_par_header_struct = Struct('!HH')
tlv_par_header_size = tlv_par_header_struct.size
tlv_par_header_unpack = tlv_par_header_struct.unpack

TVE_PARAM_SIZES = {
    # param type: (param name, value size in bytes)
    1: ('AntennaID', 2),
    2: ('FirstSeenTimestampUTC', 8),
    3: ('FirstSeenTimestampUptime', 8),
    4: ('LastSeenTimestampUTC', 8),
    5: ('LastSeenTimestampUptime', 8),
    6: ('PeakRSSI', 1),
    7: ('ChannelIndex', 2),
    8: ('TagSeenCount', 2),
    9: ('ROSpecID', 4),
    10: ('InventoryParameterSpecID', 2),
    11: ('C1G2CRC', 2),
    12: ('C1G2PC', 2),
    13: ('EPC-96', 12),
    14: ('SpecIndex', 2),
    15: ('ClientRequestOpSpecResult', 2),
    16: ('AccessSpecID', 4),
    17: ('OpSpecID', 2),
    18: ('C1G2SingulationDetails', 4),
    19: ('C1G2XPCW1', 2),
    20: ('C1G2XPCW2', 2),
}


LLRPMessage = namedtuple('LLRPMessage',
                         ['type', 'version', 'msgid', 'parameter_block'])

LLRPParameter = namedtuple('LLRPParameter',
                           ['type', 'value', 'sub_parameters'])


def msg_header_encode(msgtype, version, length, msgid):
    ver = version & 0x07
    msgtype = msgtype & 0x03FF
    return msg_header_pack((ver << 10) | msgtype,
                           msg_header_size + length, msgid)


def msg_header_decode(data):
    msgtype, length, msgid = msg_header_unpack(data[:msg_header_size])
    version = (msgtype >> 10) & 0x07
    msgtype = msgtype & 0x03FF
    return msgtype, version, length, msgid


def split_messages(data):
    """Frame the complete LLRP messages found at the start of `data`.

    Returns a list of LLRPMessage, in stream order, and the trailing bytes
    that do not yet make a complete message. Bytes following a corrupted
    header are dropped.
    """
    messages = []
    data_len = len(data)
    start_pos = 0
    while data_len - start_pos >= msg_header_size:
        msgtype, version, msg_len, msgid = msg_header_decode(
            data[start_pos:start_pos + msg_header_size])
        if msg_len < msg_header_size:
            # No way to find the next frame boundary
            logger.warning('Invalid length %d for message type %d; dropping'
                           ' %d bytes', msg_len, msgtype, data_len - start_pos)
            return messages, b''
        if data_len - start_pos < msg_len:
            logger.debugfast('expect %d bytes (have %d)', msg_len,
                             data_len - start_pos)
            break
        body = data[start_pos + msg_header_size:start_pos + msg_len]
        messages.append(LLRPMessage(msgtype, version, msgid, body))
        start_pos += msg_len
    return messages, data[start_pos:]


def decode_messages(data):
    """Decode every complete message of a byte sequence."""
    messages, remainder = split_messages(data)
    if remainder:
        logger.debugfast('ignoring %d trailing bytes', len(remainder))
    return messages


def param_header_decode(data):
    """Decode the header of the parameter at the start of `data`.

    Returns (type, header length, full length).
    """
    first_byte = tve_header_unpack(data[:tve_header_size])[0]
    if first_byte & 0b10000000:
        partype = first_byte & 0x7f
        try:
            _, value_size = TVE_PARAM_SIZES[partype]
        except KeyError:
            raise LLRPDecodeError('Unknown TV parameter type '
                                  '{}'.format(partype))
        return partype, tve_header_size, tve_header_size + value_size

    if len(data) < tlv_par_header_size:
        raise LLRPDecodeError('Too few bytes ({}) for a parameter '
                              'header'.format(len(data)))
    partype, length = tlv_par_header_unpack(data[:tlv_par_header_size])
    partype = partype & 0x03FF
    if length < tlv_par_header_size:
        raise LLRPDecodeError('Invalid length {} for parameter type '
                              '{}'.format(length, partype))
    return partype, tlv_par_header_size, length


def decode_parameters(data):
    """Decode a parameter block into a list of LLRPParameter.

    Container parameters get their body decoded into sub_parameters, the
    others keep an empty tuple.
    """
    parameters = []
    datalen = len(data)
    start_pos = 0
    while start_pos < datalen:
        try:
            partype, hdr_len, full_length = param_header_decode(
                data[start_pos:])
        except StructError as exc:
            raise LLRPDecodeError('Invalid parameter header: {}'.format(exc))
        if start_pos + full_length > datalen:
            raise LLRPDecodeError('Truncated parameter type {}: need {} bytes,'
                                  ' have {}'.format(partype, full_length,
                                                    datalen - start_pos))
        value = data[start_pos + hdr_len:start_pos + full_length]
        if partype in CONTAINER_PARAM_TYPES:
            sub_parameters = tuple(decode_parameters(value))
        else:
            sub_parameters = ()
        parameters.append(LLRPParameter(partype, value, sub_parameters))
        start_pos += full_length
    return parameters
