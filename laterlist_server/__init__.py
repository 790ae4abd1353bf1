from .config import ServerConfig
from .server import create_app, run_server

__all__ = ["ServerConfig", "create_app", "run_server"]
