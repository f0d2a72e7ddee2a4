"""Consumer-facing event delivery.

Events are queued by the reader thread and delivered to subscribers by a
separate dispatcher thread, so a slow or failing callback never holds up
the processing of reader messages.
"""

from queue import Queue
from threading import Lock, Thread

from .log import get_logger

logger = get_logger(__name__)

EVENT_TAG = 'tag'
EVENT_DISCONNECT = 'disconnect'
EVENT_TIMEOUT = 'timeout'
EVENT_ERROR = 'error'

EVENT_KINDS = (EVENT_TAG, EVENT_DISCONNECT, EVENT_TIMEOUT, EVENT_ERROR)

THREAD_NAME = 'llrp-session-events'

_STOP = object()


class EventSink(object):
    def __init__(self, name=THREAD_NAME):
        self._name = name
        self._callbacks = {kind: [] for kind in EVENT_KINDS}
        self._lock = Lock()
        self._queue = Queue()
        self._thread = None

    def add_callback(self, kind, cb):
        """Register `cb` to be called as cb(*args) for each `kind` event."""
        self._check_kind(kind)
        with self._lock:
            if cb not in self._callbacks[kind]:
                self._callbacks[kind].append(cb)

    def remove_callback(self, kind, cb):
        self._check_kind(kind)
        with self._lock:
            if cb in self._callbacks[kind]:
                self._callbacks[kind].remove(cb)

    def clear_callbacks(self, kind=None):
        with self._lock:
            if kind is None:
                for cbs in self._callbacks.values():
                    del cbs[:]
            else:
                self._check_kind(kind)
                self._callbacks[kind] = []

    def emit(self, kind, *args):
        """Queue an event for delivery and return immediately."""
        self._check_kind(kind)
        self._ensure_started()
        self._queue.put((kind, args))

    def flush(self):
        """Block until every event queued so far has been delivered."""
        if self._thread is None:
            return
        self._queue.join()

    def close(self):
        """Deliver the pending events then stop the dispatcher thread."""
        thread = self._thread
        if thread is None:
            return
        self._queue.put((_STOP, ()))
        thread.join()
        self._thread = None

    def _ensure_started(self):
        with self._lock:
            if self._thread is not None:
                return
            self._thread = Thread(target=self._dispatch_loop,
                                  name=self._name)
            self._thread.daemon = True
            self._thread.start()

    def _dispatch_loop(self):
        while True:
            kind, args = self._queue.get()
            try:
                if kind is _STOP:
                    break
                self._deliver(kind, args)
            finally:
                self._queue.task_done()

    def _deliver(self, kind, args):
        with self._lock:
            callbacks = list(self._callbacks[kind])
        for fn in callbacks:
            try:
                fn(*args)
            except Exception:
                logger.exception('Error during user %s callback. '
                                 'Continuing anyway...', kind)

    @staticmethod
    def _check_kind(kind):
        if kind not in EVENT_KINDS:
            raise ValueError('Unknown event kind: {}'.format(kind))
