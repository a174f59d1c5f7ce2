"""
Rendering sink used by the dispatcher.

The dispatcher only ever talks to a view through these effects. The Qt
window and the console front end both implement them.
"""


class ChatView:
    """Abstract view. Every effect must be implemented by a front end."""

    def show_login_view(self):
        """The connection is open; nickname entry can start."""
        raise NotImplementedError

    def show_chat_view(self):
        """The join was acknowledged; clear the log and show the chat page."""
        raise NotImplementedError

    def append_message(self, message):
        """Append one RenderedMessage to the message log."""
        raise NotImplementedError

    def show_error(self, detail: str):
        """Show an error reported by the server."""
        raise NotImplementedError

    def show_connection_lost(self):
        """The connection is gone for good."""
        raise NotImplementedError

    def show_fatal_error(self, detail: str):
        """No connection could be constructed; nothing else will work."""
        raise NotImplementedError

    def play_sound(self):
        """New message cue."""
        raise NotImplementedError
