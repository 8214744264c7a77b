"""Authentication and authorization.

Learn: One authentication path, two tokens:
1. Users → email/password → short-lived access token (response body)
   + long-lived refresh token (HTTP-only cookie)
2. Protected routes → Authorization: Bearer <access token>

The refresh cookie is the durable session anchor; the access token is
rebuilt from it after every page reload.
"""
