import itertools
import secrets
import threading
import time

_counter = itertools.count(1)
_lock = threading.Lock()


def new_id(kind: str) -> str:
	"""
	Generate a unique id like ``link-1718000000000-7a3f9c``.

	The millisecond timestamp orders ids roughly by creation time, the process-wide
	counter keeps ids distinct within a single clock tick, and the random suffix keeps
	them apart from ids minted by other processes.
	"""
	with _lock:
		seq = next(_counter)
	ts = int(time.time() * 1000)
	return f"{kind}-{ts}-{seq:x}{secrets.token_hex(3)}"
