from dataclasses import asdict

from flask import jsonify, request, Response, current_app

from src.api.upload.format import UploadResponse, format_item
from src.common.errors import MalformedPayload
from src.common.logging import logger
from src.mediastore.reconciler import Reconciler

def handle_upload(collection: str) -> Response:
    body = request.get_json(silent=True)
    if body is None:
        raise MalformedPayload("Request body must be JSON")

    reconciler: Reconciler = current_app.config["state"]["reconciler"]

    result = reconciler.submit(collection, body)

    logger.info(
        "upload committed",
        extra={"collection": collection, "num_items": len(result.items)}
    )

    return jsonify(asdict(UploadResponse.from_result(result)))

def handle_items(collection: str) -> Response:
    reconciler: Reconciler = current_app.config["state"]["reconciler"]

    items = reconciler.list_items(collection)

    return jsonify({"items": [format_item(item) for item in items]})
