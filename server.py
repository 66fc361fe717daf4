import argparse
from flask import Flask, Response, jsonify
from flask_cors import CORS
from loguru import logger
import setproctitle
import sys
from waitress import serve

from src.api.upload.handlers import handle_upload, handle_items
from src.common.errors import (
    BadRequestError,
    TransferError,
    ReconcileError,
)
from src.common.logging import configure_logging
from src.mediastore.filesystem_mediastore import FilesystemMediastore
from src.mediastore.reconciler import Reconciler
from app_config import AppConfig

DEFAULT_COLLECTION = "default"

def configure_routes(app: Flask) -> None:
    # Configure the Flask app with the routes defined in this module.

    @app.errorhandler(BadRequestError)
    def handle_bad_request(e):
        logger.exception(f"Bad request: {e}")
        return jsonify({'message': e.message, 'error': 'BadRequest'}), 400

    @app.errorhandler(TransferError)
    def handle_transfer_error(e):
        # MalformedPayload, DecodeError
        logger.exception(f"Rejected payload: {e}")
        return jsonify({'message': str(e), 'error': e.kind}), 400

    @app.errorhandler(ReconcileError)
    def handle_reconcile_error(e):
        # DuplicateOrder, UnknownReference
        logger.exception(f"Reconciliation failed: {e}")
        return jsonify({'message': str(e), 'error': e.kind}), 400

    @app.route('/upload', methods=['POST'])
    def upload() -> Response:
        return handle_upload(DEFAULT_COLLECTION)

    @app.route('/<collection>/upload', methods=['POST'])
    def collection_upload(collection: str) -> Response:
        return handle_upload(collection)

    @app.route('/<collection>/items', methods=['GET'])
    def items(collection: str) -> Response:
        return handle_items(collection)

def boot_state(app: Flask, cfg: AppConfig) -> None:
    app_state = {}

    store = FilesystemMediastore(cfg.mediastore.base_dir, cfg.mediastore.public_url)

    app_state["mediastore"] = store
    app_state["reconciler"] = Reconciler(store, cfg.reconciler)

    app.config["state"] = app_state
    app.config["MAX_CONTENT_LENGTH"] = cfg.server.max_content_length

def create_app(config: AppConfig) -> Flask:
    """Main entry point for the server."""
    app = Flask(__name__)
    boot_state(app, config)
    configure_routes(app)
    CORS(app)
    return app

def main():
    cfg = AppConfig.from_yaml(args.config)
    configure_logging(cfg.server.log_file)
    logger.info("Python interpreter version: " + sys.version)
    app = create_app(cfg)

    serve(app, host=args.host, port=args.port)

if __name__ == '__main__':
    setproctitle.setproctitle("media-collection")
    parser = argparse.ArgumentParser()
    parser.add_argument('--port', type=int, default=4400)
    parser.add_argument('--host', type=str, default="127.0.0.1")
    parser.add_argument('--config', type=str, default="config.yml")
    args = parser.parse_args()
    main()
