"""Inventory command.
"""

import time

from llrp_session.llrp import LLRPReaderConfig, LLRPReaderClient
from llrp_session.log import get_logger

logger = get_logger(__name__)

numtags = 0


def tag_report_cb(reader, tag):
    """Function to run each time the reader reports seeing a tag."""
    global numtags
    numtags += 1
    host, port = reader.get_peername()
    print('{}:{} {} {}'.format(host, port, tag.tag_id, tag.seen_count))


def timeout_cb(reader, err):
    # Idle reader: give up on it, nothing restarts the session for us
    host, port = reader.get_peername()
    logger.warning('%s from %s:%d, disconnecting', err, host, port)
    reader.disconnect()


def disconnected_cb(reader, err):
    host, port = reader.get_peername()
    logger.info('%s:%d: %s', host, port, err)


def error_cb(reader, err):
    host, port = reader.get_peername()
    logger.error('%s:%d: %s', host, port, err)


def parse_host(host, default_port):
    if ':' in host:
        host, port = host.split(':', 1)
        return host, int(port)
    return host, default_port


def main(hosts, port, duration=None, log=True):
    if not hosts:
        logger.info('No readers specified.')
        return 0

    reader_clients = []
    for host in hosts:
        host, reader_port = parse_host(host, port)
        config = LLRPReaderConfig({'log': log})
        reader = LLRPReaderClient(host, reader_port, config)
        reader.add_tag_report_callback(tag_report_cb)
        reader.add_timeout_callback(timeout_cb)
        reader.add_disconnected_callback(disconnected_cb)
        reader.add_error_callback(error_cb)
        reader_clients.append(reader)

    start_time = time.monotonic()
    for reader in reader_clients:
        reader.connect()

    while True:
        try:
            alive_readers = [reader for reader in reader_clients
                             if reader.is_alive()]
            if not alive_readers:
                break
            if duration and time.monotonic() - start_time >= duration:
                logger.info('Inventory time elapsed. Stopping readers...')
                for reader in alive_readers:
                    reader.disconnect(timeout=None)
                break
            for reader in alive_readers:
                reader.join(1)
        except (KeyboardInterrupt, SystemExit):
            logger.info("Exit detected! Stopping readers...")
            for reader in reader_clients:
                reader.disconnect(timeout=None)
            break

    for reader in reader_clients:
        reader.events.close()

    logger.info('total # of tags seen: %d', numtags)
    return 0
