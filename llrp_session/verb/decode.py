"""Decode command.
"""

import binascii

from llrp_session.llrp_decoder import decode_messages, decode_parameters
from llrp_session.llrp_errors import LLRPDecodeError
from llrp_session.llrp_proto import (get_message_name_from_type,
                                     get_param_name_from_type)
from llrp_session.log import get_logger
from llrp_session.util import hexstr

logger = get_logger(__name__)


def format_parameters(parameters, indent=1):
    lines = []
    for param in parameters:
        lines.append('{}{} ({}): {}'.format(
            '  ' * indent, get_param_name_from_type(param.type), param.type,
            hexstr(param.value)))
        lines.extend(format_parameters(param.sub_parameters, indent + 1))
    return lines


def format_message(lmsg):
    lines = ['{} (type={}, ver={}, id={})'.format(
        get_message_name_from_type(lmsg.type), lmsg.type, lmsg.version,
        lmsg.msgid)]
    try:
        parameters = decode_parameters(lmsg.parameter_block)
    except LLRPDecodeError as err:
        lines.append('  undecodable parameters ({}): {}'.format(
            err, hexstr(lmsg.parameter_block)))
    else:
        lines.extend(format_parameters(parameters))
    return '\n'.join(lines)


def main(msg):
    data = binascii.unhexlify(msg)
    messages = decode_messages(data)
    if not messages:
        logger.warning('No complete message in %d bytes', len(data))
    print('Decoded message(s):\n==========')
    for lmsg in messages:
        print(format_message(lmsg))
