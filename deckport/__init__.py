"""
deckport: PowerPoint package import/export for the slide document model.
"""

from deckport.services.pptx import (
    export_package,
    export_package_sync,
    import_package,
    import_package_sync,
)

__version__ = "0.1.0"

__all__ = [
    'import_package',
    'import_package_sync',
    'export_package',
    'export_package_sync',
]
