"""
Client configuration module.

This module handles client-side configuration settings.
"""

import os

from common.constants import (
    DEFAULT_ORIGIN, DEFAULT_ROOM, CONNECT_TIMEOUT, ENV_ORIGIN, ENV_DEBUG
)
from common.protocol_definitions import build_endpoint_url


class ClientConfig:
    """Client configuration class."""

    def __init__(self, origin: str = DEFAULT_ORIGIN, room: str = DEFAULT_ROOM,
                 debug: bool = False, connect_timeout: float = CONNECT_TIMEOUT):
        self.origin = origin
        self.room = room
        self.debug = debug
        self.connect_timeout = connect_timeout

    @classmethod
    def from_env(cls, environ=None):
        """Build a configuration from CHAT_ORIGIN / CHAT_DEBUG."""
        environ = os.environ if environ is None else environ
        return cls(
            origin=environ.get(ENV_ORIGIN, DEFAULT_ORIGIN),
            debug=environ.get(ENV_DEBUG, '').lower() in ('1', 'true', 'yes', 'on')
        )

    @property
    def endpoint_url(self) -> str:
        """WebSocket endpoint, scheme derived from the origin."""
        return build_endpoint_url(self.origin)

    def get_connection_info(self):
        """Get connection information."""
        return {
            'origin': self.origin,
            'endpoint': self.endpoint_url,
            'room': self.room
        }
