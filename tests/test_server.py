import os
import pytest

from app_config import AppConfig, ServerConfig
from server import create_app
from src.mediastore.model import MediastoreConfig
from src.mediastore.reconciler import ReconcilerConfig
from src.transfer.codec import encode_bytes

def inline(order: int, data: bytes, content_type: str = "image/png") -> dict:
    return {"order": order, "data": encode_bytes(data), "fileType": content_type}

def upload(test_client, body, collection: str | None = None):
    path = f"/{collection}/upload" if collection else "/upload"
    return test_client.post(path, json=body)

def test_upload_default_collection(test_client, uploads_dir, png_bytes, jpeg_bytes):
    resp = upload(test_client, {
        "productName": "Lamp",
        "des": "A lamp",
        "imagesBlob": [inline(1, png_bytes), inline(2, jpeg_bytes, "image/jpeg")],
    })

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["message"] == "Files uploaded successfully"
    assert body["filePaths"] == ["uploads/default/image-1.png", "uploads/default/image-2.jpg"]
    assert [item["order"] for item in body["items"]] == [1, 2]

    with open(os.path.join(uploads_dir, "default", "image-1.png"), 'rb') as f:
        assert f.read() == png_bytes

def test_items_round_trip(test_client, png_bytes):
    created = upload(test_client, {"imagesBlob": [inline(1, png_bytes)]}, "shop").get_json()

    resp = test_client.get("/shop/items")

    assert resp.status_code == 200
    assert resp.get_json()["items"] == created["items"]
    assert resp.get_json()["items"][0]["imageUrl"] == "uploads/shop/image-1.png"
    assert resp.get_json()["items"][0]["fileType"] == "image/png"

def test_items_unknown_collection(test_client):
    resp = test_client.get("/fresh/items")
    assert resp.status_code == 200
    assert resp.get_json() == {"items": []}

def test_reorder_via_references(test_client, uploads_dir):
    items = upload(test_client, {"imagesBlob": [inline(1, b"one"), inline(2, b"two")]}).get_json()["items"]
    first, second = items

    resp = upload(test_client, {"imagesBlob": [
        {"order": 1, "id": second["id"], "imageUrl": second["imageUrl"], "data": None},
        {"order": 2, "id": first["id"], "imageUrl": first["imageUrl"], "data": None},
    ], "removeImages": []})

    assert resp.status_code == 200
    assert [item["id"] for item in resp.get_json()["items"]] == [second["id"], first["id"]]
    with open(os.path.join(uploads_dir, "default", "image-1.png"), 'rb') as f:
        assert f.read() == b"two"

@pytest.mark.parametrize("body,error", [
    ({"productName": "Lamp"}, "MalformedPayload"),
    ({"imagesBlob": [{"order": 1}]}, "MalformedPayload"),
    ({"imagesBlob": [{"order": 1, "data": "@@@@", "fileType": "image/png"}]}, "DecodeError"),
    ({"imagesBlob": [inline(1, b"a"), inline(1, b"b")]}, "DuplicateOrder"),
    ({"imagesBlob": [{"order": 1, "id": "ghost", "data": None}]}, "UnknownReference"),
])
def test_rejected_uploads(test_client, uploads_dir, body, error):
    resp = upload(test_client, body)

    assert resp.status_code == 400
    assert resp.get_json()["error"] == error
    assert resp.get_json()["message"]
    assert not os.path.exists(os.path.join(uploads_dir, "default"))

def test_non_json_body(test_client):
    resp = test_client.post("/upload", data="not json", content_type="text/plain")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MalformedPayload"

def test_invalid_collection_key(test_client):
    resp = upload(test_client, {"imagesBlob": []}, "bad.key")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "BadRequest"

def test_required_metadata(temp_dir, uploads_dir):
    cfg = AppConfig(
        root_dir=temp_dir,
        mediastore=MediastoreConfig(base_dir=uploads_dir),
        reconciler=ReconcilerConfig(required_metadata=["productName", "des"]),
        server=ServerConfig(log_file=None)
    )
    test_client = create_app(cfg).test_client()

    resp = upload(test_client, {"productName": "Lamp", "imagesBlob": []})
    assert resp.status_code == 400
    assert "Missing required fields" in resp.get_json()["message"]

    resp = upload(test_client, {"productName": "Lamp", "des": "A lamp", "imagesBlob": []})
    assert resp.status_code == 200
    assert resp.get_json()["filePaths"] == []

def test_body_size_limit(temp_dir, uploads_dir):
    cfg = AppConfig(
        root_dir=temp_dir,
        mediastore=MediastoreConfig(base_dir=uploads_dir),
        server=ServerConfig(max_content_length=1024, log_file=None)
    )
    test_client = create_app(cfg).test_client()

    resp = upload(test_client, {"imagesBlob": [inline(1, b"x" * 4096)]})
    assert resp.status_code == 413

def test_config_from_yaml(temp_dir):
    path = os.path.join(temp_dir, "config.yml")
    with open(path, 'w') as f:
        f.write(
            "mediastore:\n"
            "  base_dir: media\n"
            "  public_url: http://cdn.test\n"
            "reconciler:\n"
            "  required_metadata: [productName]\n"
            "  max_items: 5\n"
        )

    cfg = AppConfig.from_yaml(path)

    assert cfg.mediastore.base_dir == os.path.join(os.getcwd(), "media")
    assert cfg.mediastore.public_url == "http://cdn.test"
    assert cfg.reconciler.required_metadata == ["productName"]
    assert cfg.reconciler.max_items == 5
    assert cfg.server.max_content_length == 25 * 1024 * 1024

def test_config_root_dir(temp_dir):
    cfg = AppConfig.from_dict({"root_dir": temp_dir, "mediastore": {"base_dir": "uploads"}})
    assert cfg.mediastore.base_dir == f"{temp_dir}/uploads"

    cfg = AppConfig.from_dict({"root_dir": temp_dir, "mediastore": {"base_dir": "/abs/uploads"}})
    assert cfg.mediastore.base_dir == "/abs/uploads"
