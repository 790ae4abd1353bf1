"""Personal link organizer: tabs -> containers -> links, with a recoverable trash."""

from .core import LaterList
from .commands import Command, CommandKind, CommandResult
from .config import AppConfig
from .errors import (
	LaterListError,
	NotFound,
	ValidationError,
	EmptyInputRejected,
	LastTabProtected,
	StorageError,
)
from .merge import merge
from .models import Link, Container, Tab, Document, TRASH_VIEW
from .storage import KeyValueStore, MemoryBackend, MemoryStore, SqliteStore

__all__ = [
	"LaterList",
	# Commands
	"Command",
	"CommandKind",
	"CommandResult",
	"AppConfig",
	# Errors
	"LaterListError",
	"NotFound",
	"ValidationError",
	"EmptyInputRejected",
	"LastTabProtected",
	"StorageError",
	# Model
	"merge",
	"Link",
	"Container",
	"Tab",
	"Document",
	"TRASH_VIEW",
	# Storage
	"KeyValueStore",
	"MemoryBackend",
	"MemoryStore",
	"SqliteStore",
]
