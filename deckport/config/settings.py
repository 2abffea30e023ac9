"""
Configuration management for package import/export.

Centralized configuration with:
- Environment variable support
- Defaults matching the editor's 960x540 canvas
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == 'true'


@dataclass
class ImportConfig:
    """Settings for converting a package into a Document"""
    target_width: int = field(default_factory=lambda: int(os.getenv('DECKPORT_TARGET_WIDTH', '960')))
    target_height: int = field(default_factory=lambda: int(os.getenv('DECKPORT_TARGET_HEIGHT', '540')))
    # Bottom-edge overflow (px) that is shifted back onto the canvas instead of clipped
    overflow_tolerance_px: int = field(default_factory=lambda: int(os.getenv('DECKPORT_OVERFLOW_TOLERANCE', '15')))
    parallel_slides: bool = field(default_factory=lambda: _env_bool('DECKPORT_PARALLEL_SLIDES', 'false'))
    include_layout_elements: bool = field(default_factory=lambda: _env_bool('DECKPORT_LAYOUT_ELEMENTS', 'true'))


@dataclass
class ExportConfig:
    """Settings for writing a Document back into a package"""
    canvas_width_in: float = field(default_factory=lambda: float(os.getenv('DECKPORT_CANVAS_WIDTH_IN', '10')))
    canvas_height_in: float = field(default_factory=lambda: float(os.getenv('DECKPORT_CANVAS_HEIGHT_IN', '5.625')))
    source_width_px: int = field(default_factory=lambda: int(os.getenv('DECKPORT_TARGET_WIDTH', '960')))
    source_height_px: int = field(default_factory=lambda: int(os.getenv('DECKPORT_TARGET_HEIGHT', '540')))
    fetch_remote_images: bool = field(default_factory=lambda: _env_bool('DECKPORT_FETCH_REMOTE_IMAGES', 'true'))
    remote_timeout: float = field(default_factory=lambda: float(os.getenv('DECKPORT_REMOTE_TIMEOUT', '10')))
    placeholder_color: str = field(default_factory=lambda: os.getenv('DECKPORT_PLACEHOLDER_COLOR', 'CCCCCC'))


@dataclass
class DeckportConfig:
    """Master configuration"""
    importing: ImportConfig = field(default_factory=ImportConfig)
    exporting: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> None:
        """Validate configuration values"""
        if self.importing.target_width <= 0 or self.importing.target_height <= 0:
            raise ValueError("target canvas size must be positive")
        if self.importing.overflow_tolerance_px < 0:
            raise ValueError("overflow_tolerance_px must be >= 0")
        if self.exporting.canvas_width_in <= 0 or self.exporting.canvas_height_in <= 0:
            raise ValueError("export canvas size must be positive")
        if len(self.exporting.placeholder_color.lstrip('#')) != 6:
            raise ValueError("placeholder_color must be a 6-digit hex value")


@lru_cache()
def get_config() -> DeckportConfig:
    """Get cached configuration instance"""
    config = DeckportConfig()
    config.validate()
    return config


def reload_config() -> DeckportConfig:
    """Force reload configuration (clears cache)"""
    get_config.cache_clear()
    return get_config()
