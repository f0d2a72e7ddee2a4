"""Tests for LLRPReaderClient, against a loopback TCP "reader"."""
import socket
import threading
import unittest

from llrp_session import commands
from llrp_session.llrp import LLRPReaderClient, LLRPReaderConfig
from llrp_session.llrp_errors import ReaderConnectionError, ReaderTimeoutError
from llrp_session.report import TagObservation

from .llrp_helpers import (connection_attempt_event, event_notification,
                           hex_to_bytes, message_bytes, tag_report_data)

WAIT = 5.0
EPC = hex_to_bytes('300833b2ddd9014000000000')


def recv_exactly(conn, length):
    data = b''
    while len(data) < length:
        chunk = conn.recv(length - len(data))
        if not chunk:
            break
        data += chunk
    return data


class Recorder(object):
    """Collect callback invocations and signal their arrival."""
    def __init__(self):
        self.calls = []
        self.called = threading.Event()

    def __call__(self, reader, *args):
        self.calls.append((reader,) + args)
        self.called.set()


class TestRawDataReceived(unittest.TestCase):
    def setUp(self):
        self.writes = []
        self.reader = LLRPReaderClient('127.0.0.1', 0)
        self.reader.session.transport_tx_write = self.writes.append

    def test_empty_data(self):
        self.reader.raw_data_received(b'')
        self.reader.raw_data_received(None)
        self.assertEqual(self.writes, [])
        self.assertEqual(self.reader.partial_data, b'')

    def test_batch_is_processed_in_order(self):
        self.reader.raw_data_received(
            message_bytes('KEEPALIVE') +
            message_bytes('SET_READER_CONFIG_RESPONSE') +
            message_bytes('CLOSE_CONNECTION') +
            message_bytes('ADD_ROSPEC_RESPONSE'))
        self.assertEqual(self.writes, [commands.KEEPALIVE_ACK,
                                       commands.ADD_ROSPEC,
                                       commands.ENABLE_ROSPEC])

    def test_message_split_across_reads(self):
        data = message_bytes('READER_EVENT_NOTIFICATION',
                             event_notification(connection_attempt_event()))
        for i in range(len(data)):
            self.reader.raw_data_received(data[i:i + 1])
        self.assertEqual(self.writes, [commands.SET_READER_CONFIG])
        self.assertEqual(self.reader.partial_data, b'')

    def test_corrupted_header_is_dropped(self):
        self.reader.raw_data_received(
            hex_to_bytes('043e00000002000000000000'))
        self.assertEqual(self.reader.partial_data, b'')
        self.reader.raw_data_received(message_bytes('KEEPALIVE'))
        self.assertEqual(self.writes, [commands.KEEPALIVE_ACK])


class TestLoopbackReader(unittest.TestCase):
    def setUp(self):
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.bind(('127.0.0.1', 0))
        self.server.listen(1)
        self.server.settimeout(WAIT)
        self.port = self.server.getsockname()[1]
        self.conn = None
        self.reader = None

    def tearDown(self):
        if self.reader:
            self.reader.disconnect(timeout=WAIT)
            self.reader.events.close()
        if self.conn:
            self.conn.close()
        self.server.close()

    def start_reader(self, **kwargs):
        config = LLRPReaderConfig({'log': True})
        self.reader = LLRPReaderClient('127.0.0.1', self.port, config,
                                       **kwargs)
        self.reader.connect()
        self.conn, _ = self.server.accept()
        self.conn.settimeout(WAIT)

    def test_handshake_and_tags(self):
        tags = Recorder()
        self.start_reader()
        self.reader.add_tag_report_callback(tags)

        self.conn.sendall(message_bytes(
            'READER_EVENT_NOTIFICATION',
            event_notification(connection_attempt_event())))
        self.assertEqual(
            recv_exactly(self.conn, len(commands.SET_READER_CONFIG)),
            commands.SET_READER_CONFIG)

        self.conn.sendall(message_bytes('SET_READER_CONFIG_RESPONSE') +
                          message_bytes('ADD_ROSPEC_RESPONSE'))
        expected = commands.ADD_ROSPEC + commands.ENABLE_ROSPEC
        self.assertEqual(recv_exactly(self.conn, len(expected)), expected)

        self.conn.sendall(message_bytes('ENABLE_ROSPEC_RESPONSE'))
        self.assertEqual(recv_exactly(self.conn, len(commands.START_ROSPEC)),
                         commands.START_ROSPEC)

        self.conn.sendall(message_bytes('START_ROSPEC_RESPONSE'))
        self.assertEqual(
            recv_exactly(self.conn, len(commands.ENABLE_EVENTS_AND_REPORTS)),
            commands.ENABLE_EVENTS_AND_REPORTS)

        self.conn.sendall(message_bytes('RO_ACCESS_REPORT',
                                        tag_report_data(EPC, 2)))
        self.assertTrue(tags.called.wait(WAIT))
        self.assertEqual(tags.calls, [
            (self.reader, TagObservation('300833b2ddd9014000000000', 2))])

    def test_peer_close(self):
        disconnected = Recorder()
        errors = Recorder()
        self.start_reader()
        self.reader.add_disconnected_callback(disconnected)
        self.reader.add_error_callback(errors)

        self.conn.close()
        self.conn = None
        self.assertTrue(disconnected.called.wait(WAIT))
        _, err = disconnected.calls[0]
        self.assertIsInstance(err, ReaderConnectionError)
        self.reader.join(WAIT)
        self.assertFalse(self.reader.is_alive())
        self.reader.events.flush()
        self.assertEqual(errors.calls, [])

    def test_inactivity_timeout_keeps_connection(self):
        timeouts = Recorder()
        self.start_reader(inactivity_timeout=0.2)
        self.reader.add_timeout_callback(timeouts)

        self.assertTrue(timeouts.called.wait(WAIT))
        _, err = timeouts.calls[0]
        self.assertIsInstance(err, ReaderTimeoutError)
        self.assertTrue(self.reader.is_alive())

        self.conn.sendall(message_bytes('KEEPALIVE'))
        self.assertEqual(recv_exactly(self.conn, len(commands.KEEPALIVE_ACK)),
                         commands.KEEPALIVE_ACK)

    def test_caller_disconnect(self):
        disconnected = Recorder()
        self.start_reader()
        self.reader.add_disconnected_callback(disconnected)

        self.reader.disconnect(timeout=WAIT)
        self.assertFalse(self.reader.is_alive())
        self.assertEqual(self.conn.recv(10), b'')
        self.reader.events.flush()
        self.assertEqual(disconnected.calls, [])

    def test_connect_twice(self):
        self.start_reader()
        with self.assertRaises(ReaderConnectionError):
            self.reader.connect()


def test_connection_refused():
    # grab a free port, then close it so nothing listens there
    probe = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    probe.bind(('127.0.0.1', 0))
    port = probe.getsockname()[1]
    probe.close()

    errors = Recorder()
    reader = LLRPReaderClient('127.0.0.1', port)
    reader.add_error_callback(errors)
    reader.connect()
    assert errors.called.wait(WAIT)
    reader.join(WAIT)
    assert not reader.is_alive()
    _, err = errors.calls[0]
    assert isinstance(err, OSError)
    reader.events.close()


def test_callback_removal():
    reader = LLRPReaderClient('127.0.0.1', 0)
    tags = Recorder()
    reader.add_tag_report_callback(tags)
    reader.add_tag_report_callback(tags)
    reader.remove_tag_report_callback(tags)
    reader.events.emit('tag', TagObservation('aa', 1))
    reader.events.flush()
    assert tags.calls == []
    reader.events.close()


def test_default_target():
    reader = LLRPReaderClient()
    assert reader.get_peername() == ('192.168.0.30', 5084)
