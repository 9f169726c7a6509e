"""
Remote Module
=============
Clients for remote text-to-speech conversion services.
"""

from .base import RemoteConversionClient, StatusReport
from .factory import ClientFactory
from .playnote import PlayNoteClient

__all__ = ["RemoteConversionClient", "StatusReport", "ClientFactory", "PlayNoteClient"]
