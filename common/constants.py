"""
Shared constants for the chatroom client.

This module contains all constants used across the protocol, session and UI.
"""

# Network Configuration
DEFAULT_ORIGIN = 'http://localhost:8080'
WEBSOCKET_PATH = '/ws'
CONNECT_TIMEOUT = 10  # seconds

# Chat room
DEFAULT_ROOM = 'test'
SYSTEM_USER = 'chatbot'  # automated participant, rendered muted

# Heartbeat token, exchanged outside the JSON protocol in both directions
HEARTBEAT_TOKEN = 'p'

# Logging
LOGGER_NAME = 'chatroom_client'

# Environment variables
ENV_ORIGIN = 'CHAT_ORIGIN'
ENV_DEBUG = 'CHAT_DEBUG'


# Message Types
class Commands:
    # Client to Server
    JOIN = 'join'
    NEW_MESSAGE = 'newmsg'

    # Server to Client
    ERROR = 'error'
    JOIN_OK = 'joinOK'
    NEW_CHAT_MESSAGE = 'newchatmsg'
