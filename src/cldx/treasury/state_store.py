"""
Persist a treasury deployment through the SQLite key-value store.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..core.clock import TimeProvider
from ..database.storage_manager import StorageManager
from .deployment import Deployment

logger = logging.getLogger(__name__)

DEPLOYMENT_KEY = "deployment"


def save_deployment(db_path: Path, deployment: Deployment) -> None:
    with StorageManager(db_path) as storage:
        storage.set(DEPLOYMENT_KEY, deployment.to_dict())
    logger.debug(
        "Deployment state saved",
        extra={"event": "state.saved", "path": str(db_path), "wallet": deployment.wallet.address},
    )


def load_deployment(db_path: Path, time_provider: Optional[TimeProvider] = None) -> Optional[Deployment]:
    """Load the saved deployment, or None if nothing was deployed yet."""
    if not Path(db_path).exists():
        return None
    with StorageManager(db_path) as storage:
        data = storage.get(DEPLOYMENT_KEY)
    if data is None:
        return None
    return Deployment.from_dict(data, time_provider=time_provider)
