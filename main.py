import argparse
import logging
import time
from laterlist import LaterList
from laterlist.collector import TabResponder
from laterlist.importers import TabDumpImporter
from laterlist.logger import setup_logging
from laterlist_server import ServerConfig, run_server

DATA_DIR = ".laterlist"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8080


def load_pages(path: str) -> list:
	"""Read a tab dump file into ``[{"title", "url"}]`` for the responder."""
	with open(path, 'r', encoding='utf-8') as f:
		links = TabDumpImporter().parse(f.read())
	return [{"title": link.title, "url": link.url} for link in links]


def main():
	parser = argparse.ArgumentParser(description="Read Later link organizer")
	parser.add_argument("--data", "-d", default=DATA_DIR, help="Data directory path")
	parser.add_argument("--host", default=DEFAULT_HOST, help="Server host")
	parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Server port")
	parser.add_argument("--import", "-i", dest="import_file", default=None, help="Backup or tab dump to import")
	parser.add_argument("--replace", action="store_true", help="Replace the collection instead of merging on import")
	parser.add_argument("--export", "-e", default=None, help="Write a JSON backup into this directory")
	parser.add_argument("--respond", default=None, metavar="PAGES",
						help="Answer pull requests with the pages listed in this tab dump file")
	parser.add_argument("--no-server", action="store_true", help="Don't start web server")
	parser.add_argument("--debug", action="store_true", help="Enable debug logging")

	args = parser.parse_args()

	setup_logging(level=logging.DEBUG if args.debug else logging.INFO)

	laterlist = None
	responder = None
	try:
		laterlist = LaterList.open(args.data)
		stats = laterlist.stats()
		logging.info(f"Opened collection: {args.data}")
		logging.info(f"Tabs: {stats['tabs']}, Links: {stats['links']}, Trash: {stats['trash']}")

		if args.import_file:
			added = laterlist.import_file(args.import_file, merge=not args.replace)
			logging.info(f"Imported {added} links from {args.import_file}")

		if args.export:
			target = laterlist.export_to(args.export)
			logging.info(f"Backup written to {target}")

		if args.respond:
			pages = load_pages(args.respond)
			responder = TabResponder(laterlist.store, lambda: pages)
			responder.start()
			logging.info(f"Answering pull requests with {len(pages)} pages")

		if not args.no_server:
			config = ServerConfig(host=args.host, port=args.port, debug=args.debug, data_dir=args.data)
			logging.info(f"Starting server at http://{args.host}:{args.port}")
			logging.info("Press Ctrl+C to stop")
			run_server(config, laterlist)
		elif responder is not None:
			logging.info("Press Ctrl+C to stop")
			while True:
				time.sleep(1)

	except KeyboardInterrupt:
		logging.info("Shutting down...")
	except Exception as e:
		logging.critical(f"Fatal error: {e}", exc_info=True)
	finally:
		if responder:
			responder.stop()
		if laterlist:
			laterlist.close()
			logging.info("Collection closed")


if __name__ == "__main__":
	main()
