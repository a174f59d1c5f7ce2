#!/usr/bin/env python3
"""
Client GUI - PyQt6 Application

Two pages in one window:
- Login page (nickname field + enter button)
- Chat page (message log + compose field)

Networking runs on a QThread with its own asyncio loop. View effects coming
from the dispatcher are marshalled back to the GUI thread through signals.
"""

import asyncio
import html
import sys
import threading

# PyQt6 imports
from PyQt6.QtWidgets import (
    QApplication, QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QLabel,
    QPushButton, QTextBrowser, QLineEdit, QMessageBox, QStackedWidget
)
from PyQt6.QtCore import Qt, QObject, QThread, pyqtSignal

from client.dispatcher import RenderedMessage
from client.main_client import ChatroomClient
from client.ui.view import ChatView
from client.utils.config import ClientConfig
from client.utils.logger import logger

MUTED_COLOR = '#95A5A6'


def format_message_html(message: RenderedMessage) -> str:
    """Render one chat line. Message text is server-escaped markup and is kept as-is."""
    parts = [f'<small>{message.time_display} </small>']
    if message.show_author:
        parts.append(f'<strong>{html.escape(message.author)}</strong> ')
    parts.append(message.text)
    body = ''.join(parts)
    if message.muted:
        return f'<span style="color: {MUTED_COLOR};">{body}</span>'
    return body


# ============================================================================
# LOGIN PAGE
# ============================================================================

class LoginWidget(QWidget):
    """Nickname entry."""

    join_requested = pyqtSignal(str)  # raw nickname

    def __init__(self, nickname: str = None):
        super().__init__()
        self.setup_ui()
        if nickname:
            self.nickname_field.setText(nickname)
        self.set_inputs_enabled(False)

    def setup_ui(self):
        """Setup login page UI."""
        layout = QVBoxLayout()
        layout.setContentsMargins(40, 40, 40, 40)
        layout.addStretch()

        self.status_label = QLabel("Connecting...")
        self.status_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        layout.addWidget(self.status_label)

        input_layout = QHBoxLayout()
        self.nickname_field = QLineEdit()
        self.nickname_field.setPlaceholderText("Nickname")
        self.nickname_field.setStyleSheet("""
            QLineEdit {
                background-color: #34495E;
                color: #ECF0F1;
                border: 1px solid #2C3E50;
                border-radius: 5px;
                padding: 5px;
            }
        """)
        self.nickname_field.returnPressed.connect(self.request_join)
        input_layout.addWidget(self.nickname_field)

        self.enter_btn = QPushButton("Enter chatroom")
        self.enter_btn.clicked.connect(self.request_join)
        self.enter_btn.setStyleSheet("""
            QPushButton {
                background-color: #3498DB;
                color: white;
                border: none;
                padding: 8px 15px;
                border-radius: 5px;
                font-weight: bold;
            }
            QPushButton:hover {
                background-color: #2980B9;
            }
        """)
        input_layout.addWidget(self.enter_btn)

        layout.addLayout(input_layout)
        layout.addStretch()
        self.setLayout(layout)

    def request_join(self):
        """Emit the nickname; the dispatcher decides whether it is usable."""
        self.join_requested.emit(self.nickname_field.text())

    def set_inputs_enabled(self, enabled: bool):
        self.nickname_field.setEnabled(enabled)
        self.enter_btn.setEnabled(enabled)
        if enabled:
            self.status_label.setText("Choose a nickname")
            self.nickname_field.setFocus()


# ============================================================================
# CHAT PAGE
# ============================================================================

class ChatWidget(QWidget):
    """Chat interface with message log and input."""

    message_sent = pyqtSignal(str)  # raw message text

    def __init__(self):
        super().__init__()
        self.setup_ui()

    def setup_ui(self):
        """Setup chat interface UI."""
        layout = QVBoxLayout()
        layout.setSpacing(5)
        layout.setContentsMargins(5, 5, 5, 5)

        # Server turns links into anchors, let Qt open them
        self.chat_text = QTextBrowser()
        self.chat_text.setReadOnly(True)
        self.chat_text.setOpenExternalLinks(True)
        self.chat_text.setStyleSheet("""
            QTextBrowser {
                background-color: #2C2C2C;
                color: #ECF0F1;
                border: 1px solid #34495E;
                border-radius: 5px;
                padding: 5px;
                font-size: 10pt;
            }
        """)
        layout.addWidget(self.chat_text)

        input_layout = QHBoxLayout()

        self.input_field = QLineEdit()
        self.input_field.setPlaceholderText("Type a message...")
        self.input_field.setStyleSheet("""
            QLineEdit {
                background-color: #34495E;
                color: #ECF0F1;
                border: 1px solid #2C3E50;
                border-radius: 5px;
                padding: 5px;
            }
        """)
        self.input_field.returnPressed.connect(self.send_message)
        input_layout.addWidget(self.input_field)

        self.send_btn = QPushButton("Send")
        self.send_btn.clicked.connect(self.send_message)
        self.send_btn.setStyleSheet("""
            QPushButton {
                background-color: #3498DB;
                color: white;
                border: none;
                padding: 8px 15px;
                border-radius: 5px;
                font-weight: bold;
            }
            QPushButton:hover {
                background-color: #2980B9;
            }
        """)
        input_layout.addWidget(self.send_btn)

        layout.addLayout(input_layout)
        self.setLayout(layout)

    def send_message(self):
        """Send chat message. The field is cleared even when nothing is sent."""
        text = self.input_field.text()
        self.input_field.clear()
        self.message_sent.emit(text)

    def add_message(self, message: RenderedMessage):
        """Append message to the log and scroll to it."""
        self.chat_text.append(format_message_html(message))

        scrollbar = self.chat_text.verticalScrollBar()
        scrollbar.setValue(scrollbar.maximum())

    def clear_messages(self):
        self.chat_text.clear()

    def set_inputs_enabled(self, enabled: bool):
        self.input_field.setEnabled(enabled)
        self.send_btn.setEnabled(enabled)


# ============================================================================
# VIEW BRIDGE
# ============================================================================

class QtChatView(QObject, ChatView):
    """View effects emitted as signals, safe to call from the network thread."""

    login_view_requested = pyqtSignal()
    chat_view_requested = pyqtSignal()
    message_appended = pyqtSignal(object)  # RenderedMessage
    error_shown = pyqtSignal(str)
    connection_lost = pyqtSignal()
    fatal_error = pyqtSignal(str)
    sound_requested = pyqtSignal()

    def show_login_view(self):
        self.login_view_requested.emit()

    def show_chat_view(self):
        self.chat_view_requested.emit()

    def append_message(self, message):
        self.message_appended.emit(message)

    def show_error(self, detail: str):
        self.error_shown.emit(detail)

    def show_connection_lost(self):
        self.connection_lost.emit()

    def show_fatal_error(self, detail: str):
        self.fatal_error.emit(detail)

    def play_sound(self):
        self.sound_requested.emit()


# ============================================================================
# MAIN WINDOW
# ============================================================================

class ClientMainWindow(QMainWindow):
    """Main application window."""

    def __init__(self, config: ClientConfig = None, nickname: str = None):
        super().__init__()
        self.config = config or ClientConfig()
        self.network_thread = None
        self._closing = False

        self.view = QtChatView()

        self.setup_ui(nickname)
        self.setup_connections()

    def setup_ui(self, nickname: str = None):
        """Setup the main window UI."""
        self.setWindowTitle("Chatroom")
        self.setGeometry(100, 100, 800, 600)

        self.pages = QStackedWidget()
        self.login_widget = LoginWidget(nickname)
        self.chat_widget = ChatWidget()
        self.pages.addWidget(self.login_widget)
        self.pages.addWidget(self.chat_widget)
        self.pages.setCurrentWidget(self.login_widget)
        self.setCentralWidget(self.pages)

        self.apply_dark_theme()

    def setup_connections(self):
        """Setup signal-slot connections."""
        self.login_widget.join_requested.connect(self.on_join_requested)
        self.chat_widget.message_sent.connect(self.on_send_message)

        self.view.login_view_requested.connect(self.on_login_view_requested)
        self.view.chat_view_requested.connect(self.on_chat_view_requested)
        self.view.message_appended.connect(self.on_message_appended)
        self.view.error_shown.connect(self.on_error_shown)
        self.view.connection_lost.connect(self.on_connection_lost)
        self.view.fatal_error.connect(self.on_fatal_error)
        self.view.sound_requested.connect(self.on_sound_requested)

    def apply_dark_theme(self):
        """Apply dark theme styling."""
        self.setStyleSheet("""
            QMainWindow {
                background-color: #1A1A1A;
            }
            QWidget {
                background-color: #1A1A1A;
                color: #ECF0F1;
            }
        """)

    # ========================================================================
    # CONNECTION & NETWORKING
    # ========================================================================

    def connect_to_server(self):
        """Start the network thread."""
        logger.info(f"[GUI] Connecting to {self.config.origin}")
        self.setWindowTitle("Chatroom - Connecting...")

        self.network_thread = NetworkThread(self.config, self.view)
        self.network_thread.start()
        return True

    # ========================================================================
    # USER ACTIONS
    # ========================================================================

    def on_join_requested(self, nickname: str):
        if self.network_thread:
            self.network_thread.request_join(nickname)

    def on_send_message(self, text: str):
        if self.network_thread:
            self.network_thread.request_send(text)

    # ========================================================================
    # VIEW EFFECTS
    # ========================================================================

    def on_login_view_requested(self):
        self.setWindowTitle("Chatroom (Connected)")
        self.pages.setCurrentWidget(self.login_widget)
        self.login_widget.set_inputs_enabled(True)

    def on_chat_view_requested(self):
        self.chat_widget.clear_messages()
        self.pages.setCurrentWidget(self.chat_widget)
        self.chat_widget.input_field.setFocus()
        nickname = self.login_widget.nickname_field.text().strip()
        self.setWindowTitle(f"Chatroom - {nickname}")

    def on_message_appended(self, message: RenderedMessage):
        try:
            self.chat_widget.add_message(message)
        except Exception as e:
            logger.log_error("append message", e)

    def on_error_shown(self, detail: str):
        QMessageBox.warning(self, "Error", detail)

    def on_connection_lost(self):
        self.login_widget.set_inputs_enabled(False)
        self.login_widget.status_label.setText("Disconnected")
        self.chat_widget.set_inputs_enabled(False)
        self.setWindowTitle("Chatroom (Disconnected)")
        if self._closing:
            # The user closed the window, the connection went down with it
            return
        QMessageBox.critical(self, "Connection lost", "Websocket lost. Restart the client.")

    def on_fatal_error(self, detail: str):
        self.login_widget.set_inputs_enabled(False)
        self.login_widget.status_label.setText("Websocket unavailable")
        self.chat_widget.set_inputs_enabled(False)
        QMessageBox.critical(self, "Error", f"Unable to open a websocket connection: {detail}")

    def on_sound_requested(self):
        QApplication.beep()

    # ========================================================================
    # CLEANUP
    # ========================================================================

    def closeEvent(self, event):
        """Handle window close event."""
        self._closing = True
        if self.network_thread:
            self.network_thread.stop()
            if not self.network_thread.wait(3000):
                logger.warning("[CLEANUP] Network thread did not exit in time")
        event.accept()


# ============================================================================
# NETWORK THREAD
# ============================================================================

class NetworkThread(QThread):
    """Thread running the session and dispatcher on its own event loop."""

    def __init__(self, config: ClientConfig, view: ChatView, connector=None):
        super().__init__()
        self.client = ChatroomClient(config, view, connector=connector)
        self.loop = None
        self.task = None
        self.loop_ready = threading.Event()

    def run(self):
        """Run network loop."""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self.task = loop.create_task(self.client.run())
        self.loop = loop
        self.loop_ready.set()
        try:
            self.loop.run_until_complete(self.task)
        except asyncio.CancelledError:
            logger.info("[NETWORK] Connection attempt cancelled")
        finally:
            self.loop.close()

    def _submit(self, coro):
        """Schedule a coroutine on the network loop from the GUI thread."""
        if not self.loop_ready.wait(timeout=5.0):
            logger.warning("[NETWORK] Event loop not ready, request dropped")
            coro.close()
            return None
        try:
            return asyncio.run_coroutine_threadsafe(coro, self.loop)
        except RuntimeError as e:
            # Loop already closed after the connection ended
            logger.debug(f"[NETWORK] Request dropped: {e}")
            coro.close()
            return None

    def request_join(self, nickname: str):
        return self._submit(self.client.dispatcher.request_join(nickname))

    def request_send(self, text: str):
        return self._submit(self.client.dispatcher.request_send(text))

    def stop(self):
        """Stop network thread by closing the connection, or abandoning the attempt."""
        if not self.loop or self.loop.is_closed():
            return
        if self.client.session.connection is None:
            # Still connecting, there is no socket to close yet
            try:
                self.loop.call_soon_threadsafe(self.task.cancel)
            except RuntimeError as e:
                logger.debug(f"[NETWORK] Stop dropped: {e}")
            return
        self._submit(self.client.session.close())


# ============================================================================
# MAIN ENTRY POINT
# ============================================================================

def main():
    """Main entry point."""
    app = QApplication(sys.argv)

    config = ClientConfig.from_env()
    window = ClientMainWindow(config)
    window.show()
    window.connect_to_server()

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
