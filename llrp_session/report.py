"""Tag observations and reader events extracted from decoded parameters.
"""

from collections import namedtuple
from struct import Struct

from .llrp_proto import Param_Name2Type, ROSPEC_EVENT_END
from .log import get_logger
from .util import hexstr

logger = get_logger(__name__)

struct_ushort = Struct('!H')

TAG_REPORT_DATA = Param_Name2Type['TagReportData']
EVENT_NOTIFICATION_DATA = Param_Name2Type['ReaderEventNotificationData']
ROSPEC_EVENT = Param_Name2Type['ROSpecEvent']
EPC_96 = Param_Name2Type['EPC-96']
TAG_SEEN_COUNT = Param_Name2Type['TagSeenCount']


TagObservation = namedtuple('TagObservation', ['tag_id', 'seen_count'])


def map_sub_parameters(param):
    """Map sub-parameter type to raw value for one decoded parameter.

    A sub-parameter type seen more than once overwrites the earlier value.
    """
    properties = {}
    for sub_param in param.sub_parameters:
        properties[sub_param.type] = sub_param.value
    return properties


def tag_observation_from_parameter(param):
    """Build a TagObservation from a TagReportData parameter.

    Missing sub-parameters give tag_id=None and seen_count=0.
    """
    sub_params = map_sub_parameters(param)

    tag_id = None
    seen_count = 0

    epc = sub_params.get(EPC_96)
    if epc is not None:
        tag_id = hexstr(epc)

    count = sub_params.get(TAG_SEEN_COUNT)
    if count is not None and len(count) >= struct_ushort.size:
        seen_count = struct_ushort.unpack(count[:struct_ushort.size])[0]

    return TagObservation(tag_id, seen_count)


def extract_tag_observations(parameters):
    """Return the publishable observations of an RO_ACCESS_REPORT body."""
    observations = []
    for param in parameters:
        if param.type != TAG_REPORT_DATA:
            continue
        tag = tag_observation_from_parameter(param)
        if tag.tag_id is None:
            logger.debugfast('skipping TagReportData without EPC-96')
            continue
        observations.append(tag)
    return observations


def is_rospec_end_event(parameters):
    # Only one ROSpec is ever installed, so the ROSpecID is not checked.
    for param in parameters:
        if param.type != EVENT_NOTIFICATION_DATA:
            continue
        event = map_sub_parameters(param).get(ROSPEC_EVENT)
        if event and event[0] == ROSPEC_EVENT_END:
            return True
    return False
