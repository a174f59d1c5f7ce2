#!/usr/bin/env python3
"""
Chatroom Client - Main Entry Point

Connects to the chat server's /ws endpoint, joins the room under a nickname
and exchanges messages.

Usage:
    python main_client.py [--origin URL] [--nickname NAME] [--gui | --cli] [--debug]

Modes:
    --gui        Launch with PyQt6 GUI (default)
    --cli        Launch with command-line interface
"""

import argparse
import logging
import sys

from client.utils.config import ClientConfig
from client.utils.logger import logger


def run_gui_client(config: ClientConfig, nickname: str = None):
    """Run the GUI client."""
    try:
        from client.ui.client_gui import ClientMainWindow
        from PyQt6.QtWidgets import QApplication
    except ImportError:
        print("[ERROR] PyQt6 not installed. Install with: pip install PyQt6")
        sys.exit(1)

    app = QApplication(sys.argv)

    window = ClientMainWindow(config, nickname)
    window.show()
    window.connect_to_server()

    sys.exit(app.exec())


def run_cli_client(config: ClientConfig, nickname: str = None):
    """Run the CLI client."""
    import asyncio
    from client.main_client import ChatroomClient

    client = ChatroomClient(config)

    try:
        asyncio.run(client.interactive_mode(nickname))
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")


def main():
    """Main entry point."""
    defaults = ClientConfig.from_env()

    parser = argparse.ArgumentParser(description='Chatroom Client')
    parser.add_argument('--origin', type=str, default=defaults.origin,
                        help=f'Origin of the chat server, http:// or https:// (default: {defaults.origin})')
    parser.add_argument('--nickname', type=str, default=None,
                        help='Nickname to join with (default: asked in the client)')
    parser.add_argument('--cli', action='store_true',
                        help='Run in command-line mode (GUI is default)')
    parser.add_argument('--debug', action='store_true', default=defaults.debug,
                        help='Trace every frame sent and received')

    args = parser.parse_args()

    config = ClientConfig(origin=args.origin, debug=args.debug)
    if config.debug:
        logger.set_level(logging.DEBUG)

    if args.cli:
        run_cli_client(config, args.nickname)
    else:
        run_gui_client(config, args.nickname)


if __name__ == "__main__":
    main()
