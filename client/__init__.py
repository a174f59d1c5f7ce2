"""
Client package for the chatroom client.

This package contains all client-side functionality including:
- Transport session (connection lifecycle and heartbeat)
- Protocol dispatcher (login/chat state machine)
- User interface (PyQt6 window and console)
- Configuration and utilities
"""
