"""Transfer Code Generation — cryptographically secure, fixed-length tokens.

Invariants:
    - Codes come from `secrets` only (OS CSPRNG) — there is no fallback source
    - Code length is 2 * nbytes lowercase hex characters (12 bytes -> 24 chars)
    - redact_code never returns enough characters to redeem a code
"""

import secrets

from artledger.core.domain_types import TransferCodeValue

DEFAULT_CODE_BYTES: int = 12
_REDACTED_PREFIX_CHARS: int = 4


def generate_code(nbytes: int = DEFAULT_CODE_BYTES) -> TransferCodeValue:
    """Generate a new transfer code."""
    if nbytes < 8:
        raise ValueError(f"transfer codes need at least 8 random bytes, got {nbytes}")
    return TransferCodeValue(secrets.token_hex(nbytes))


def redact_code(code: str) -> str:
    """Loggable form of a code: a short prefix only."""
    return f"{code[:_REDACTED_PREFIX_CHARS]}…"
