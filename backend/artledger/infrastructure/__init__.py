"""Infrastructure Layer — datastore, identity and cross-cutting concerns.

Invariants:
    - Infrastructure never imports from services/ or api/
    - Backend exceptions are mapped to core/errors.py before leaving this layer

Design Decisions:
    - Collaborators (session manager, store, identity verifier) are constructed once
      in the FastAPI lifespan and handed to requests through app.state
"""
