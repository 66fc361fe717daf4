import json
from typing import Any

import requests

from src.collection.model import PersistedItem
from src.common.errors import SubmitError
from src.common.logging import logger
from src.client.model import SubmitResult

class RestMediaClient:
    def __init__(self, base_url: str, timeout: float = 30):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json'
        })

    def _log_response_and_raise(self, response: requests.Response):
        """Log response content, then raise SubmitError with whatever the server told us"""
        message = response.text
        error = None
        try:
            response_json = response.json()
            logger.error(f"{json.dumps(response_json)}")
            message = response_json.get("message", message)
            error = response_json.get("error")
        except Exception:
            logger.error(f"HTTP {response.status_code} response (non-JSON): {response.text}")
        raise SubmitError(message, status=response.status_code, error=error)

    def list_items(self, collection: str) -> list[PersistedItem]:
        """
        Stored items of a collection, in order. Used to hydrate an editing session.
        """
        try:
            response = self.session.get(
                f"{self.base_url}/{collection}/items",
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise SubmitError(f"Failed to reach server: {e}") from e

        if not response.ok:
            self._log_response_and_raise(response)

        items = sorted(response.json()["items"], key=lambda item: item["order"])
        return [self._persisted(item) for item in items]

    def submit(self, collection: str, body: dict[str, Any]) -> SubmitResult:
        """
        Send a submit request body built by encode_request.
        """
        try:
            response = self.session.post(
                f"{self.base_url}/{collection}/upload",
                json=body,
                timeout=self.timeout
            )
        except requests.RequestException as e:
            raise SubmitError(f"Failed to reach server: {e}") from e

        if not response.ok:
            self._log_response_and_raise(response)

        result = response.json()

        return SubmitResult(
            message=result.get("message", ""),
            file_paths=result.get("filePaths", []),
            items=[self._persisted(item) for item in sorted(result.get("items", []), key=lambda item: item["order"])]
        )

    def _persisted(self, item: dict) -> PersistedItem:
        return PersistedItem(
            identity=item["id"],
            url=item["imageUrl"],
            content_type=item.get("fileType") or "image/png"
        )
