"""Presentation package import and export"""

from deckport.services.pptx.exporter import PackageExporter, export_package, export_package_sync
from deckport.services.pptx.importer import PackageImporter, import_package, import_package_sync
from deckport.services.pptx.progress import ExportStage, ImportStage, ProgressCallback

__all__ = [
    'PackageImporter',
    'PackageExporter',
    'import_package',
    'import_package_sync',
    'export_package',
    'export_package_sync',
    'ImportStage',
    'ExportStage',
    'ProgressCallback',
]
