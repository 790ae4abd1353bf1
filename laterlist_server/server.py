import logging
from typing import Optional
from flask import Flask

from laterlist import LaterList
from .config import ServerConfig

logger = logging.getLogger(__name__)


def create_app(config: Optional[ServerConfig] = None, laterlist: Optional[LaterList] = None) -> Flask:
	"""Create and configure the Flask application."""
	if config is None:
		config = ServerConfig()

	if laterlist is None:
		laterlist = LaterList.open(str(config.data_dir))

	app = Flask(__name__)

	# Configure app
	app.config["SECRET_KEY"] = config.secret_key
	app.config["MAX_CONTENT_LENGTH"] = config.max_upload_size
	app.config["LATERLIST_CONFIG"] = config
	app.config["LATERLIST_INSTANCE"] = laterlist

	# Register blueprints
	from .routes.api import api_bp

	app.register_blueprint(api_bp, url_prefix="/api")

	logger.info(f"laterlist server initialized (data: {config.data_dir})")

	return app


def run_server(config: Optional[ServerConfig] = None, laterlist: Optional[LaterList] = None):
	"""Run the laterlist web server."""
	if config is None:
		config = ServerConfig()

	app = create_app(config, laterlist)

	logger.info(f"Starting laterlist server on http://{config.host}:{config.port}")

	app.run(
		host=config.host,
		port=config.port,
		debug=config.debug,
		threaded=True
	)
