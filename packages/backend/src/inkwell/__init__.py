"""Inkwell — blog platform backend.

This package holds the authentication/session core: signed access and
refresh tokens, the refresh-token cookie, the bearer authorization gate,
the login/register/refresh/logout flows, and a client-side session store
that keeps the access token in memory.
"""

__version__ = "0.1.0"
