import logging

from ..settings import Settings, settings as default_settings
from .base import Storage

logger = logging.getLogger(__name__)


def build_storage(config: Settings | None = None) -> Storage:
    config = config or default_settings
    mode = config.storage_mode
    if mode == "postgres":
        from .relational import RelationalStorage

        storage: Storage = RelationalStorage()
    elif mode == "mock":
        from .mock import MockStorage

        storage = MockStorage()
    else:
        from .memory import LiveStorage

        storage = LiveStorage()
    logger.info("storage_selected mode=%s", storage.mode)
    return storage
