"""
Domain exceptions.

Only failures that must abort the request are exceptions; expected
business outcomes travel as Result errors.
"""


class HashingError(Exception):
    """Password hashing failed (e.g. memory exhaustion). Always fatal."""


class RateLimiterUnavailable(Exception):
    """Shared rate-limit store could not be reached."""


class DuplicateIdentity(Exception):
    """Email or phone is already taken by another account."""
