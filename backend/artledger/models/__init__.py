"""ORM Models — SQLAlchemy declarative models for the three durable entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Every table is keyed by its natural key — no surrogate identifiers
    - Every table carries `version`, bumped by the store on each update

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all / alembic
"""

from artledger.models.artwork import Artwork  # noqa: F401
from artledger.models.ownership import Ownership  # noqa: F401
from artledger.models.transfer_code import TransferCode  # noqa: F401
