"""Transactional consistency and batched-retrieval layer of the marketplace."""

from typing import Optional, Tuple

from marketplace.apis.Db import Db
from marketplace.config.loader import AppConfig, load_app_config, get_log_level
from marketplace.services.batch_fetch import BatchLoader
from marketplace.services.transactions import TransactionCoordinator
from marketplace.util.logger import get_logger

__version__ = "0.1.0"


def create_services(db: Optional[Db] = None, config: Optional[AppConfig] = None) -> Tuple[BatchLoader, TransactionCoordinator]:
    """Wire a BatchLoader and a TransactionCoordinator to one shared Db.

    Call once at application start and reuse the returned services.
    """
    config = config if config is not None else load_app_config()
    get_logger("marketplace", level=get_log_level(config))
    db = db if db is not None else Db.from_environment(config)
    return BatchLoader.from_config(db, config), TransactionCoordinator(db)


__all__ = ["Db", "BatchLoader", "TransactionCoordinator", "create_services", "__version__"]
