import logging
import re
import time
from typing import List, Optional
from urllib.parse import urlparse

from laterlist.models import Link
from .base import BaseImporter

logger = logging.getLogger(__name__)

URL_PATTERN = re.compile(r"https?://[^\s|]+", re.IGNORECASE)


def title_from_url(url: str) -> str:
	"""Hostname without a leading ``www.``, or the raw url when there is none."""
	try:
		host = urlparse(url).hostname
	except ValueError:
		host = None
	if not host:
		return url
	if host.startswith("www."):
		host = host[4:]
	return host or url


class TabDumpImporter(BaseImporter):
	"""
	Plain text, one candidate link per line, e.g. ``My Site | https://example.com``.

	The first http(s) URL on a line wins; whatever is left once the URL and pipe
	characters are removed becomes the title. Lines without a URL are skipped.
	"""

	@property
	def name(self) -> str:
		return "Tab dump (plain text)"

	def can_handle(self, text: str) -> bool:
		return URL_PATTERN.search(text) is not None

	def parse_line(self, line: str, imported_at: Optional[int] = None) -> Optional[Link]:
		if not line.strip():
			return None
		match = URL_PATTERN.search(line)
		if not match:
			return None
		url = match.group(0)
		rest = line[:match.start()] + line[match.end():]
		title = rest.replace("|", "").strip()
		if not title:
			title = title_from_url(url)
		return self.make_link(url, title, imported_at)

	def parse(self, text: str) -> List[Link]:
		imported_at = int(time.time() * 1000)
		links = []
		skipped = 0
		for line in text.splitlines():
			link = self.parse_line(line, imported_at)
			if link is None:
				if line.strip():
					skipped += 1
				continue
			links.append(link)
		if skipped:
			logger.debug(f"[{self.name}] Skipped {skipped} lines without a URL")
		logger.info(f"[{self.name}] Parsed {len(links)} links")
		return links
