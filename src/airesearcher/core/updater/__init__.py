from .migrations import MIGRATIONS, Migration, run_migrations
from .update_coordinator import UpdateCoordinator, UpdateResult

__all__ = ["UpdateCoordinator", "UpdateResult", "Migration", "MIGRATIONS", "run_migrations"]
