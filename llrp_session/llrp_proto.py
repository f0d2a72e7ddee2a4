#!/usr/bin/env python

# llrp_proto.py - LLRP protocol constants for the session client
#
# Copyright (C) 2009 Rodolfo Giometti <giometti@linux.it>
# Copyright (C) 2009 CAEN RFID <support.rfid@caen.it>
# Copyright (C) 2013, 2014 Benjamin Ransford <ransford@cs.washington.edu>
# Copyright (C) 2019-2020 Florent Viard <florent@sodria.com>
#
# This program is free software; you can redistribute it and/or modify
# it under the terms of the GNU General Public License version 2 as
# published by the Free Software Foundation.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE. See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, write to the Free Software
# Foundation, Inc., 51 Franklin St, Fifth Floor, Boston, MA  02110-1301  USA

from .util import reverse_dict

#
# Define exported symbols
#

__all__ = [
    # Const
    "Message_Name2Type",
    "Message_Type2Name",
    "Param_Name2Type",
    "Param_Type2Name",
    "CONTAINER_PARAM_TYPES",
    "ROSPEC_EVENT_END",
    "VER_PROTO_V1",

    # Misc
    "get_message_name_from_type",
    "get_param_name_from_type",
]


VER_PROTO_V1 = 1

#
# LLRP message types
#

Message_Name2Type = {
    'SET_READER_CONFIG': 3,
    'SET_READER_CONFIG_RESPONSE': 13,
    'CLOSE_CONNECTION': 14,
    'ADD_ROSPEC': 20,
    'START_ROSPEC': 22,
    'ENABLE_ROSPEC': 24,
    'ADD_ROSPEC_RESPONSE': 30,
    'START_ROSPEC_RESPONSE': 32,
    'ENABLE_ROSPEC_RESPONSE': 34,
    'RO_ACCESS_REPORT': 61,
    'KEEPALIVE': 62,
    'READER_EVENT_NOTIFICATION': 63,
    'ENABLE_EVENTS_AND_REPORTS': 64,
    'KEEPALIVE_ACK': 72,
    'ERROR_MESSAGE': 100,
}

Message_Type2Name = reverse_dict(Message_Name2Type)

#
# LLRP parameter types
#
# Types below 128 are TV encoded, the others are TLV encoded.

Param_Name2Type = {
    'TagSeenCount': 8,
    'EPC-96': 13,
    'UTCTimestamp': 128,
    'EventsAndReports': 226,
    'TagReportData': 240,
    'EPCData': 241,
    'ReaderEventNotificationData': 246,
    'ROSpecEvent': 249,
    'ConnectionAttemptEvent': 256,
}

Param_Type2Name = reverse_dict(Param_Name2Type)

# Parameters whose body is only made of sub-parameters.
CONTAINER_PARAM_TYPES = frozenset([
    Param_Name2Type['TagReportData'],
    Param_Name2Type['ReaderEventNotificationData'],
])

# 16.2.7.6.3 ROSpecEvent Parameter, EventType field
ROSPEC_EVENT_START = 0
ROSPEC_EVENT_END = 1
ROSPEC_EVENT_PREEMPTION = 2


def get_message_name_from_type(msgtype):
    return Message_Type2Name.get(msgtype, 'UNKNOWN({})'.format(msgtype))


def get_param_name_from_type(partype):
    return Param_Type2Name.get(partype, 'UNKNOWN({})'.format(partype))
