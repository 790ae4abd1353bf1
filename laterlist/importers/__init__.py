from typing import List, Optional

from .base import BaseImporter
from .backup import BookmarkBackupImporter
from .text import TabDumpImporter, title_from_url

# Order matters: the plain-text importer accepts anything containing a URL
AVAILABLE_IMPORTERS: List[BaseImporter] = [
	BookmarkBackupImporter(),
	TabDumpImporter(),
]

def get_importer_for(text: str) -> Optional[BaseImporter]:
	for importer in AVAILABLE_IMPORTERS:
		if importer.can_handle(text):
			return importer
	return None
