"""Command-line wrapper for llrp_session commands.
"""

import click
from . import __version__
from . import log as loggie
from .llrp import LLRP_DEFAULT_PORT
from .verb import decode as _decode
from .verb import inventory as _inventory

logger = loggie.get_logger(__name__)


@click.group()
@click.option('-d', '--debug', is_flag=True, default=False)
@click.option('-l', '--logfile', type=click.Path())
def cli(debug, logfile):
    loggie.init_logging(debug, logfile)


@cli.command()
@click.argument('host', type=str, nargs=-1)
@click.option('-p', '--port', type=int, default=LLRP_DEFAULT_PORT)
@click.option('-t', '--time', type=float,
              help='seconds to inventory (default: until interrupted)')
@click.option('--log/--no-log', default=True,
              help='log received messages and tags (default on)')
def inventory(host, port, time, log):
    """Connect to readers and print the tags they report."""
    logger.debug('inventory args: host=%s port=%s time=%s log=%s',
                 host, port, time, log)
    return _inventory.main(host, port, time, log)


@cli.command()
@click.argument('msg', type=str)
def decode(msg):
    """Decode LLRP messages given in hexadecimal."""
    try:
        _decode.main(msg)
    except ValueError as err:
        raise click.BadParameter(str(err), param_hint='MSG')


@cli.command()
def version():
    print(__version__)
