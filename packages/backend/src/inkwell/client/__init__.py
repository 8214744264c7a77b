"""Client for the Inkwell auth API.

Learn: SessionClient is the Python twin of the browser's session
handling: access token in memory, refresh token in the cookie jar.
"""

from inkwell.client.session import SessionClient, SessionError, SessionExpired

__all__ = ["SessionClient", "SessionError", "SessionExpired"]
