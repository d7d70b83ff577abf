"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Catalog tables are global; library tables are scoped by account and owner

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from gamesync.models.external_account import ExternalAccount  # noqa: F401
from gamesync.models.catalog_title import CatalogTitle  # noqa: F401
from gamesync.models.catalog_release import CatalogRelease  # noqa: F401
from gamesync.models.external_mapping import ExternalMapping  # noqa: F401
from gamesync.models.library_entry_snapshot import LibraryEntrySnapshot  # noqa: F401
from gamesync.models.digital_copy_item import DigitalCopyItem  # noqa: F401
from gamesync.models.sync_job import SyncJob  # noqa: F401
from gamesync.models.connector_device import ConnectorDevice  # noqa: F401
