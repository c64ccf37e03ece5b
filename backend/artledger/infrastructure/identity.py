"""Caller Identity — extracts the verified subject set by the authenticating gateway.

Invariants:
    - Returns None (never raises) when the header is missing or blank
    - Services turn None into UnauthorizedError before touching the store
    - The subject is stripped; it is otherwise passed through unchanged

Design Decisions:
    - Token verification happens upstream (API gateway / identity provider): this
      service trusts one configured header and must not be reachable around the gateway
    - Header lookup is case-insensitive (Starlette Headers already are; plain dicts are not)
"""

from typing import Mapping


class GatewayHeaderVerifier:
    """IdentityVerifier reading the subject from a trusted gateway header."""

    def __init__(self, header_name: str):
        self.header_name = header_name.lower()

    def verify(self, headers: Mapping[str, str]) -> str | None:
        for name, value in headers.items():
            if name.lower() == self.header_name:
                value = value.strip()
                return value or None
        return None
