from dataclasses import dataclass, field
from pathlib import Path
import os
import logging

logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
	"""Configuration for the laterlist web server."""
	host: str = "127.0.0.1"
	port: int = 8080
	debug: bool = False
	secret_key: str = field(default_factory=lambda: os.urandom(24).hex())
	data_dir: Path = None
	max_upload_size: int = 10 * 1024 * 1024  # 10MB, backups are plain JSON

	def __post_init__(self):
		# Set default data dir if not provided
		if self.data_dir is None:
			self.data_dir = Path.cwd() / ".laterlist"
		elif isinstance(self.data_dir, str):
			self.data_dir = Path(self.data_dir)

		# Ensure it's resolved
		self.data_dir = self.data_dir.resolve()

		# Ensure data directory exists
		self.data_dir.mkdir(parents=True, exist_ok=True)
