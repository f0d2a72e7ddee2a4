"""Minimal LLRP reader session client in pure Python
"""

from .version import __version__ as llrp_session_version


__all__ = ('commands', 'events', 'llrp', 'llrp_decoder', 'llrp_errors',
           'llrp_proto', 'log', 'report')

__version__ = llrp_session_version
