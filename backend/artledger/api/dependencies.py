"""Request Dependencies — hand process-wide collaborators to route handlers.

Invariants:
    - Collaborators live on app.state (set by the lifespan), never in module globals
    - get_caller_sub returns None for anonymous callers; services raise Unauthorized

Design Decisions:
    - Separate dependency per collaborator: tests override exactly the one they replace
"""

from fastapi import Depends, Request

from artledger.core.repository_protocols import IdentityVerifier
from artledger.services.context import ServiceContext


def get_service_context(request: Request) -> ServiceContext:
    ctx = getattr(request.app.state, "services", None)
    if ctx is None:
        raise RuntimeError("Service context not initialized")
    return ctx


def get_identity_verifier(request: Request) -> IdentityVerifier:
    verifier = getattr(request.app.state, "identity", None)
    if verifier is None:
        raise RuntimeError("Identity verifier not initialized")
    return verifier


def get_caller_sub(
    request: Request,
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> str | None:
    """Verified subject of the caller, or None."""
    return verifier.verify(request.headers)
