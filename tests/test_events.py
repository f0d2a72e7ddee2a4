"""Tests for EventSink."""
import threading
import unittest

import pytest

from llrp_session.events import (EventSink, EVENT_DISCONNECT, EVENT_ERROR,
                                 EVENT_TAG, EVENT_TIMEOUT)


class TestEventSink(unittest.TestCase):
    def setUp(self):
        self.sink = EventSink()

    def tearDown(self):
        self.sink.close()

    def test_delivery_order(self):
        received = []
        self.sink.add_callback(EVENT_TAG, received.append)
        for i in range(10):
            self.sink.emit(EVENT_TAG, i)
        self.sink.flush()
        self.assertEqual(received, list(range(10)))

    def test_delivered_off_the_emitting_thread(self):
        threads = []
        self.sink.add_callback(
            EVENT_TIMEOUT, lambda err: threads.append(threading.current_thread()))
        self.sink.emit(EVENT_TIMEOUT, None)
        self.sink.flush()
        self.assertEqual(len(threads), 1)
        self.assertIsNot(threads[0], threading.current_thread())

    def test_emit_does_not_wait_for_callbacks(self):
        release = threading.Event()
        done = []
        self.sink.add_callback(EVENT_TAG,
                               lambda tag: (release.wait(5), done.append(tag)))
        self.sink.emit(EVENT_TAG, 'a')
        self.assertEqual(done, [])
        release.set()
        self.sink.flush()
        self.assertEqual(done, ['a'])

    def test_multiple_subscribers_and_kinds(self):
        first, second, errors = [], [], []
        self.sink.add_callback(EVENT_DISCONNECT, first.append)
        self.sink.add_callback(EVENT_DISCONNECT, second.append)
        self.sink.add_callback(EVENT_ERROR, errors.append)
        self.sink.emit(EVENT_DISCONNECT, 'bye')
        self.sink.flush()
        self.assertEqual(first, ['bye'])
        self.assertEqual(second, ['bye'])
        self.assertEqual(errors, [])

    def test_failing_callback_does_not_stop_delivery(self):
        received = []

        def broken(tag):
            raise RuntimeError('consumer failure')

        self.sink.add_callback(EVENT_TAG, broken)
        self.sink.add_callback(EVENT_TAG, received.append)
        self.sink.emit(EVENT_TAG, 1)
        self.sink.emit(EVENT_TAG, 2)
        self.sink.flush()
        self.assertEqual(received, [1, 2])

    def test_duplicate_registration_and_removal(self):
        received = []
        self.sink.add_callback(EVENT_TAG, received.append)
        self.sink.add_callback(EVENT_TAG, received.append)
        self.sink.emit(EVENT_TAG, 1)
        self.sink.flush()
        self.sink.remove_callback(EVENT_TAG, received.append)
        self.sink.emit(EVENT_TAG, 2)
        self.sink.flush()
        self.assertEqual(received, [1])

    def test_clear_callbacks(self):
        received = []
        self.sink.add_callback(EVENT_TAG, received.append)
        self.sink.add_callback(EVENT_ERROR, received.append)
        self.sink.clear_callbacks(EVENT_TAG)
        self.sink.emit(EVENT_TAG, 1)
        self.sink.emit(EVENT_ERROR, 2)
        self.sink.flush()
        self.sink.clear_callbacks()
        self.sink.emit(EVENT_ERROR, 3)
        self.sink.flush()
        self.assertEqual(received, [2])

    def test_close_drains_pending_events(self):
        received = []
        self.sink.add_callback(EVENT_TAG, received.append)
        for i in range(3):
            self.sink.emit(EVENT_TAG, i)
        self.sink.close()
        self.assertEqual(received, [0, 1, 2])


def test_unknown_kind():
    sink = EventSink()
    with pytest.raises(ValueError):
        sink.add_callback('didSeeTag', print)
    with pytest.raises(ValueError):
        sink.emit('didSeeTag')


def test_flush_and_close_without_events():
    sink = EventSink()
    sink.flush()
    sink.close()
