import logging, sys

def setup_logging(level = logging.INFO):
	root_logger = logging.getLogger()
	root_logger.setLevel(level)

	# Avoid duplicate output when called twice (CLI + server reload)
	for handler in list(root_logger.handlers):
		if getattr(handler, "_laterlist", False):
			root_logger.removeHandler(handler)

	handler = logging.StreamHandler(sys.stdout)
	handler._laterlist = True

	formatter = logging.Formatter(
		"[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
		datefmt="%H:%M:%S"
	)
	handler.setFormatter(formatter)
	root_logger.addHandler(handler)
