class LaterListError(Exception):
	"""Base class for every error raised by the link organizer."""
	pass


class NotFound(LaterListError):
	"""An id referenced by an operation no longer resolves."""
	def __init__(self, kind: str, item_id: str):
		self.kind = kind
		self.item_id = item_id
		super().__init__(f"{kind} not found: {item_id}")


class ValidationError(LaterListError):
	"""Imported or loaded data failed structural validation."""
	def __init__(self, message: str, path: str = ""):
		self.message = message
		self.path = path
		super().__init__(f"{path}: {message}" if path else message)


class EmptyInputRejected(LaterListError):
	"""A blank name or url was submitted."""
	pass


class LastTabProtected(LaterListError):
	"""Attempt to delete the only remaining tab."""
	pass


class StorageError(LaterListError):
	"""The key-value store failed to read or write."""
	pass
