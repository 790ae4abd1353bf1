import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class AppConfig:
	"""Configuration for a laterlist data directory."""
	storage_key: str = "readLaterData"  # Key holding the whole document
	active_tab_key: str = "activeTab"
	pull_timeout: float = 1.0  # Seconds to wait for tab responders
	poll_interval: float = 0.5  # Seconds between cross-process change polls, 0 = disabled
	import_container_prefix: str = "Imported"
	pull_container_prefix: str = "Pulled Tabs"
	restore_container_name: str = "Restored Items"
	version: int = 1  # Schema version for future migrations

	def to_dict(self) -> dict:
		return asdict(self)

	@classmethod
	def from_dict(cls, data: dict) -> 'AppConfig':
		# Only use known fields
		known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
		return cls(**known)

	def save(self, path: Path):
		"""Save config to JSON file."""
		path.parent.mkdir(parents=True, exist_ok=True)
		with open(path, 'w', encoding='utf-8') as f:
			json.dump(self.to_dict(), f, indent=2)
		logger.debug(f"Saved config to {path}")

	@classmethod
	def load(cls, path: Path) -> 'AppConfig':
		"""Load config from JSON file, or return defaults if not found."""
		if not path.exists():
			logger.debug(f"No config found at {path}, using defaults")
			return cls()

		try:
			with open(path, 'r', encoding='utf-8') as f:
				data = json.load(f)
			return cls.from_dict(data)
		except (json.JSONDecodeError, IOError) as e:
			logger.warning(f"Failed to load config: {e}, using defaults")
			return cls()

	def validate(self) -> bool:
		"""Validate config consistency."""
		if not self.storage_key or not self.active_tab_key:
			logger.error("Storage keys cannot be empty")
			return False
		if self.storage_key == self.active_tab_key:
			logger.error("Document and active tab keys must differ")
			return False
		if self.pull_timeout <= 0:
			logger.error("Pull timeout must be positive")
			return False
		if self.poll_interval < 0:
			logger.error("Poll interval cannot be negative")
			return False
		if not self.restore_container_name.strip():
			logger.error("Restore container name cannot be empty")
			return False
		return True
