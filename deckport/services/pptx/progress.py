"""
Progress tracking for import and export.

Each stage owns a fixed percentage range; events never move backwards, so a
caller can drive a progress bar straight from the callback.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Optional, Tuple

from deckport.models.presentation import ProgressEvent

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class ImportStage(Enum):
    """Stage names reported while importing a package."""
    LOADING = "loading"
    PARSING_THEME = "parsing-theme"
    EXTRACTING_MEDIA = "extracting-media"
    PARSING_SLIDES = "parsing-slides"
    COMPLETE = "complete"


class ExportStage(Enum):
    """Stage names reported while exporting a document."""
    PREPARING = "preparing"
    SLIDES = "slides"
    FINALIZING = "finalizing"
    COMPLETE = "complete"


class ProgressTracker:
    """
    Emits ProgressEvents for one import or export run.

    Progress inside a stage is interpolated over the stage's (start, end)
    range by item count. Values are clamped so they never decrease.
    """

    IMPORT_PROGRESS: Dict[ImportStage, Tuple[int, int]] = {
        ImportStage.LOADING: (0, 10),
        ImportStage.PARSING_THEME: (10, 20),
        ImportStage.EXTRACTING_MEDIA: (20, 30),
        ImportStage.PARSING_SLIDES: (30, 90),
        ImportStage.COMPLETE: (100, 100),
    }

    EXPORT_PROGRESS: Dict[ExportStage, Tuple[int, int]] = {
        ExportStage.PREPARING: (0, 10),
        ExportStage.SLIDES: (10, 90),
        ExportStage.FINALIZING: (90, 100),
        ExportStage.COMPLETE: (100, 100),
    }

    STAGE_MESSAGES = {
        ImportStage.LOADING: "Loading file...",
        ImportStage.PARSING_THEME: "Parsing theme...",
        ImportStage.EXTRACTING_MEDIA: "Extracting images...",
        ImportStage.PARSING_SLIDES: "Parsing slides...",
        ImportStage.COMPLETE: "Import complete!",
        ExportStage.PREPARING: "Preparing export...",
        ExportStage.SLIDES: "Exporting slides...",
        ExportStage.FINALIZING: "Generating file...",
        ExportStage.COMPLETE: "Export complete!",
    }

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self.callback = callback
        self.progress = 0
        self.events = 0

    def _range(self, stage) -> Tuple[int, int]:
        if isinstance(stage, ImportStage):
            return self.IMPORT_PROGRESS[stage]
        return self.EXPORT_PROGRESS[stage]

    def start(self, stage, message: Optional[str] = None) -> ProgressEvent:
        """Report the beginning of a stage at its start percentage"""
        return self._emit(stage, self._range(stage)[0], message or self.STAGE_MESSAGES[stage])

    def step(self, stage, done: int, total: int, message: Optional[str] = None) -> ProgressEvent:
        """Report done-of-total items within a stage"""
        start, end = self._range(stage)
        fraction = done / total if total > 0 else 1
        return self._emit(stage, start + round(fraction * (end - start)), message or self.STAGE_MESSAGES[stage])

    def complete(self, stage, message: Optional[str] = None) -> ProgressEvent:
        return self._emit(stage, 100, message or self.STAGE_MESSAGES[stage])

    def _emit(self, stage, value: int, message: str) -> ProgressEvent:
        self.progress = max(self.progress, min(100, value))
        event = ProgressEvent(stage=stage.value, current=self.progress, total=100, message=message)
        self.events += 1
        if self.callback is not None:
            try:
                self.callback(event)
            except Exception as e:
                # Observer errors are logged, never raised
                logger.warning(f"Progress callback failed: {e}")
        return event
