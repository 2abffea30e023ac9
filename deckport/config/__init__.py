"""Configuration for deckport"""

from deckport.config.settings import (
    ImportConfig,
    ExportConfig,
    DeckportConfig,
    get_config,
    reload_config,
)
from deckport.config.logging_config import (
    get_logging_config,
    apply_logging_config,
    setup_logging,
    get_logger,
)

__all__ = [
    'ImportConfig',
    'ExportConfig',
    'DeckportConfig',
    'get_config',
    'reload_config',
    'get_logging_config',
    'apply_logging_config',
    'setup_logging',
    'get_logger',
]
