import select
import time

from binascii import hexlify
from datetime import datetime
from socket import (AF_INET, SOCK_STREAM, SHUT_RDWR, SOL_SOCKET, SO_KEEPALIVE,
                    IPPROTO_TCP, TCP_NODELAY, socket)
from threading import Event, Lock, Thread

from . import commands
from .events import (EventSink, EVENT_TAG, EVENT_DISCONNECT, EVENT_TIMEOUT,
                     EVENT_ERROR)
from .llrp_decoder import decode_parameters, split_messages
from .llrp_errors import (LLRPDecodeError, ReaderConnectionError,
                          ReaderTimeoutError)
from .llrp_proto import Message_Name2Type, get_message_name_from_type
from .log import get_logger, is_general_debug_enabled
from .report import extract_tag_observations, is_rospec_end_event

LLRP_DEFAULT_HOST = '192.168.0.30'
LLRP_DEFAULT_PORT = 5084
INACTIVITY_TIMEOUT = 60  # seconds
RECV_SIZE = 4096
THREAD_NAME_PREFIX = 'llrp-session-reader'

logger = get_logger(__name__)


class LLRPReaderConfig(object):
    def __init__(self, config_dict=None):
        # Log connection, messages and tags at INFO level
        self.log = False
        # Initial session flags, normally left to False
        self.config_sent = False
        self.spec_start_sent = False

        if config_dict:
            self.update_config(config_dict)

    def update_config(self, config_dict):
        for key, value in config_dict.items():
            if hasattr(self, key):
                setattr(self, key, value)


class LLRPSession(object):
    """Reader session state machine.

    The next command to send is decided only by the type of the message
    just received, plus two sticky flags:

    - config_sent: SET_READER_CONFIG was pushed on this connection. Never
      cleared while the connection is alive.
    - spec_start_sent: a START_ROSPEC is in flight or the ROSpec is running.
      Cleared by an RO_ACCESS_REPORT or an End_of_ROSpec event.
    """

    def __init__(self, config, transport_tx_write=None, events=None):
        self.config = config
        self.transport_tx_write = transport_tx_write
        self.events = events

        self.config_sent = config.config_sent
        self.spec_start_sent = config.spec_start_sent

        self._handlers = {
            Message_Name2Type['READER_EVENT_NOTIFICATION']:
                self.handle_READER_EVENT_NOTIFICATION,
            Message_Name2Type['SET_READER_CONFIG_RESPONSE']:
                self.handle_SET_READER_CONFIG_RESPONSE,
            Message_Name2Type['ADD_ROSPEC_RESPONSE']:
                self.handle_ADD_ROSPEC_RESPONSE,
            Message_Name2Type['ENABLE_ROSPEC_RESPONSE']:
                self.handle_ENABLE_ROSPEC_RESPONSE,
            Message_Name2Type['START_ROSPEC_RESPONSE']:
                self.handle_START_ROSPEC_RESPONSE,
            Message_Name2Type['RO_ACCESS_REPORT']:
                self.handle_RO_ACCESS_REPORT,
            Message_Name2Type['KEEPALIVE']: self.handle_KEEPALIVE,
        }

    def reset(self):
        """Forget the session flags, for use on a brand new connection."""
        self.config_sent = self.config.config_sent
        self.spec_start_sent = self.config.spec_start_sent

    def log(self, msg, *args):
        if self.config.log:
            logger.info(msg, *args)
        else:
            logger.debugfast(msg, *args)

    def handleMessage(self, lmsg):
        """Run the action bound to the type of `lmsg`, if any."""
        msgName = get_message_name_from_type(lmsg.type)
        self.log('Receiving: %s', msgName)

        handler = self._handlers.get(lmsg.type)
        if handler is None:
            logger.debugfast('ignoring %s', msgName)
            return

        try:
            handler(lmsg)
        except LLRPDecodeError as err:
            logger.warning('dropping malformed %s message: %s', msgName, err)

    def handle_READER_EVENT_NOTIFICATION(self, lmsg):
        parameters = decode_parameters(lmsg.parameter_block)
        if is_rospec_end_event(parameters):
            logger.debugfast('End_of_ROSpec event')
            self.spec_start_sent = False

        if not self.config_sent:
            self.send_SET_READER_CONFIG()
            self.config_sent = True
        else:
            self.send_START_ROSPEC()

    def handle_SET_READER_CONFIG_RESPONSE(self, lmsg):
        self.send_ADD_ROSPEC()

    def handle_ADD_ROSPEC_RESPONSE(self, lmsg):
        self.send_ENABLE_ROSPEC()

    def handle_ENABLE_ROSPEC_RESPONSE(self, lmsg):
        self.send_START_ROSPEC()

    def handle_START_ROSPEC_RESPONSE(self, lmsg):
        self.send_ENABLE_EVENTS_AND_REPORTS()

    def handle_RO_ACCESS_REPORT(self, lmsg):
        # A report closes the current cycle even if its content is unusable
        self.spec_start_sent = False

        self.log('RO_ACCESS_REPORT at %s', datetime.now().isoformat())
        parameters = decode_parameters(lmsg.parameter_block)
        for tag in extract_tag_observations(parameters):
            self.log('ID: %s\tRead count: %d', tag.tag_id, tag.seen_count)
            if self.events:
                self.events.emit(EVENT_TAG, tag)

    def handle_KEEPALIVE(self, lmsg):
        self.send_KEEPALIVE_ACK()

    def send_SET_READER_CONFIG(self):
        self.sendMessage('SET_READER_CONFIG', commands.SET_READER_CONFIG)

    def send_ENABLE_EVENTS_AND_REPORTS(self):
        self.sendMessage('ENABLE_EVENTS_AND_REPORTS',
                         commands.ENABLE_EVENTS_AND_REPORTS)

    def send_ADD_ROSPEC(self):
        self.sendMessage('ADD_ROSPEC', commands.ADD_ROSPEC)

    def send_ENABLE_ROSPEC(self):
        self.sendMessage('ENABLE_ROSPEC', commands.ENABLE_ROSPEC)

    def send_START_ROSPEC(self):
        """Send START_ROSPEC unless one is already pending."""
        if self.spec_start_sent:
            logger.debugfast('START_ROSPEC already sent, skipping')
            return
        self.spec_start_sent = True
        self.sendMessage('START_ROSPEC', commands.START_ROSPEC)

    def send_KEEPALIVE_ACK(self):
        self.sendMessage('KEEPALIVE_ACK', commands.KEEPALIVE_ACK)

    def sendMessage(self, name, msgbytes):
        if is_general_debug_enabled():
            logger.debugfast('sending %s: %s', name, hexlify(msgbytes))
        self.transport_tx_write(msgbytes)


class LLRPReaderClient(object):
    def __init__(self, host=LLRP_DEFAULT_HOST, port=None, config=None,
                 timeout=5.0, inactivity_timeout=INACTIVITY_TIMEOUT):
        if port is None:
            port = LLRP_DEFAULT_PORT
        self._port = port
        self._host = host
        self._socktimeout = timeout
        self._inactivity_timeout = inactivity_timeout

        self._socket = None
        self._socket_thread = None
        self._socket_lock = Lock()
        self._stop_main_loop = Event()
        self._last_activity = None

        # for partial data transfers
        self.partial_data = b''

        if config:
            self.config = config
        else:
            self.config = LLRPReaderConfig()

        self.events = EventSink(name='-'.join([THREAD_NAME_PREFIX, 'events',
                                              str(self._host),
                                              str(self._port)]))

        self.session = LLRPSession(
            self.config,
            transport_tx_write=self.send_data,
            events=self.events
        )

    def get_peername(self):
        return (self._host, self._port)

    def add_tag_report_callback(self, cb):
        """Call cb(reader, tag) for each TagObservation with a tag id."""
        self.events.add_callback(EVENT_TAG, self._wrap(cb))

    def remove_tag_report_callback(self, cb):
        self.events.remove_callback(EVENT_TAG, self._wrap(cb))

    def add_disconnected_callback(self, cb):
        """Call cb(reader, error) when the reader closes the connection."""
        self.events.add_callback(EVENT_DISCONNECT, self._wrap(cb))

    def remove_disconnected_callback(self, cb):
        self.events.remove_callback(EVENT_DISCONNECT, self._wrap(cb))

    def add_timeout_callback(self, cb):
        """Call cb(reader, error) after each idle period.

        The connection is left open, closing it is up to the callback owner.
        """
        self.events.add_callback(EVENT_TIMEOUT, self._wrap(cb))

    def remove_timeout_callback(self, cb):
        self.events.remove_callback(EVENT_TIMEOUT, self._wrap(cb))

    def add_error_callback(self, cb):
        """Call cb(reader, error) on connection or transport failure."""
        self.events.add_callback(EVENT_ERROR, self._wrap(cb))

    def remove_error_callback(self, cb):
        self.events.remove_callback(EVENT_ERROR, self._wrap(cb))

    def _wrap(self, cb):
        return _ReaderCallback(self, cb)

    def _connect_socket(self):
        sock = socket(AF_INET, SOCK_STREAM)
        try:
            sock.settimeout(self._socktimeout)
            sock.connect((self._host, self._port))
            sock.setsockopt(SOL_SOCKET, SO_KEEPALIVE, 1)
            sock.setsockopt(IPPROTO_TCP, TCP_NODELAY, 1)
        except OSError:
            sock.close()
            raise
        with self._socket_lock:
            self._socket = sock
        self._last_activity = time.monotonic()
        self.session.log('Connected to: %s:%s', self._host, self._port)

    def connect(self):
        """Start the reader thread, which opens the connection.

        Connection failures are reported through the error callbacks.
        """
        if self._socket_thread:
            raise ReaderConnectionError('Already connected')

        self._stop_main_loop.clear()
        self.partial_data = b''
        self.session.reset()
        self._socket_thread = Thread(target=self.main_loop,
                                     name="-".join([THREAD_NAME_PREFIX,
                                                   str(self._host),
                                                   str(self._port)]))
        self._socket_thread.start()

    def disconnect(self, timeout=0):
        """Close the connection and stop the reader thread.

        A timeout other than 0 waits for the reader thread to finish, None
        waits forever.
        """
        if not self._socket_thread and not self._socket:
            logger.warning('Reader not connected. Disconnect is not needed.')
        self._stop_main_loop.set()
        with self._socket_lock:
            if self._socket:
                try:
                    # wakes up the select of the reader thread
                    self._socket.shutdown(SHUT_RDWR)
                except OSError:
                    logger.debugfast('socket already shut down')
        if timeout != 0:
            self.join(timeout)

    def is_alive(self):
        """ Return whether the reader connection thread is alive."""
        thread = self._socket_thread
        if thread:
            return thread.is_alive()
        return False

    def join(self, timeout=None):
        """ Wait until the reader connection thread terminates."""
        thread = self._socket_thread
        if thread and thread.is_alive():
            thread.join(timeout)

    def main_loop(self):
        try:
            self._connect_socket()
        except OSError as err:
            logger.error('Failed to connect to %s:%s: %s', self._host,
                         self._port, err)
            self.events.emit(EVENT_ERROR, err)
            self._socket_thread = None
            return

        try:
            self._pump()
        except Exception as err:
            logger.exception("Exception encountered in main loop, exiting...")
            self.events.emit(EVENT_ERROR, err)
        finally:
            with self._socket_lock:
                self._socket.close()
                self._socket = None
            self._socket_thread = None

    def _pump(self):
        while not self._stop_main_loop.is_set():
            idle = time.monotonic() - self._last_activity
            remaining = max(self._inactivity_timeout - idle, 0)
            read_sockets, _, _ = select.select([self._socket], [], [],
                                               remaining)
            if self._stop_main_loop.is_set():
                break

            if not read_sockets:
                self.session.log('Connection timeout')
                self.events.emit(EVENT_TIMEOUT,
                                 ReaderTimeoutError('Connection timeout'))
                # fire again only after another full idle period
                self._last_activity = time.monotonic()
                continue

            try:
                data = self._socket.recv(RECV_SIZE)
            except OSError as err:
                if self._stop_main_loop.is_set():
                    break
                logger.warning('Connection error: %s', err)
                self.events.emit(EVENT_ERROR, err)
                break

            if not data:
                if self._stop_main_loop.is_set():
                    break
                # Zero byte received == disconnected
                self.session.log('client disconnected')
                logger.warning('Disconnected from reader %s:%s', self._host,
                               self._port)
                self.events.emit(EVENT_DISCONNECT,
                                 ReaderConnectionError('Client disconnected.'))
                break

            self._last_activity = time.monotonic()
            try:
                self.raw_data_received(data)
            except OSError as err:
                logger.warning('Failed to write to reader: %s', err)
                self.events.emit(EVENT_ERROR, err)
                break

    def send_data(self, data):
        if not self._socket:
            raise ReaderConnectionError('Not connected')
        self._socket.sendall(data)
        self._last_activity = time.monotonic()

    def raw_data_received(self, data):
        """Frame `data` and hand each complete message to the session."""
        if not data:
            self.session.log('Undefined data returned by the reader.')
            return

        if is_general_debug_enabled():
            logger.debugfast('got %d bytes from reader: %s', len(data),
                             hexlify(data))

        if self.partial_data:
            data = self.partial_data + data
        messages, self.partial_data = split_messages(data)
        for lmsg in messages:
            self.session.handleMessage(lmsg)


class _ReaderCallback(object):
    """Bind a user callback to its reader, comparable for removal."""
    __slots__ = ['reader', 'cb']

    def __init__(self, reader, cb):
        self.reader = reader
        self.cb = cb

    def __call__(self, *args):
        return self.cb(self.reader, *args)

    def __eq__(self, other):
        return (isinstance(other, _ReaderCallback) and
                self.reader is other.reader and self.cb == other.cb)

    def __hash__(self):
        return hash((id(self.reader), self.cb))
