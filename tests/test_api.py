"""
Tests for the HTTP API.
"""
import base64
from io import BytesIO

from fastapi.testclient import TestClient
from PIL import Image

from forumkit import config
from forumkit.api.v1.photos import NOT_STORABLE_MESSAGE
from tests.conftest import encode_image, gradient_image


def jpeg_upload(name="photo.jpg", size=(1600, 900)):
    return (name, encode_image(gradient_image(*size), "JPEG", quality=90), "image/jpeg")


class TestHealthEndpoints:

    def test_basic_health_check(self, client: TestClient):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_detailed_health_check(self, client: TestClient):
        client.post("/api/v1/limits/search", headers={"X-User-Id": "u1"})
        data = client.get("/health/detailed").json()
        assert data["rate_limiter"]["tracked_keys"] == 1
        assert "cpu_usage" in data["system"]


class TestPhotoEndpoints:

    def test_validate_accepts_image(self, client: TestClient):
        response = client.post("/api/v1/photos/validate", files={"file": jpeg_upload()})
        assert response.json() == {"valid": True, "error": None}

    def test_validate_rejects_text(self, client: TestClient):
        response = client.post("/api/v1/photos/validate", files={"file": ("a.txt", b"hello", "text/plain")})
        assert response.json() == {"valid": False, "error": "Only image files are allowed."}

    def test_compress(self, client: TestClient):
        response = client.post(
            "/api/v1/photos/compress",
            files={"file": jpeg_upload("My Photo!!.JPG")},
            headers={"X-User-Id": "user-42"},
        )
        assert response.status_code == 200
        data = response.json()

        assert data["file_name"] == "My-Photo--.jpg"
        assert data["mime_type"] == "image/jpeg"
        assert (data["width"], data["height"]) == (1200, 675)
        assert data["storable"] is True
        assert data["psnr"] is not None
        assert data["storage"]["path"].startswith("photos/")
        assert "/user-42/My-Photo---" in data["storage"]["path"]

        main = Image.open(BytesIO(base64.b64decode(data["image_base64"])))
        thumb = Image.open(BytesIO(base64.b64decode(data["thumbnail_base64"])))
        assert main.size == (1200, 675)
        assert thumb.size == (400, 225)
        assert data["compressed_size"] == len(base64.b64decode(data["image_base64"]))

    def test_compress_without_metrics(self, client: TestClient):
        response = client.post(
            "/api/v1/photos/compress",
            params={"include_metrics": "false"},
            files={"file": jpeg_upload()},
        )
        assert response.status_code == 200
        assert response.json()["psnr"] is None

    def test_compress_corrupt_image(self, client: TestClient):
        response = client.post(
            "/api/v1/photos/compress",
            files={"file": ("broken.png", b"\x89PNG\r\n\x1a\nnope", "image/png")},
        )
        assert response.status_code == 422

    def test_compress_wrong_type(self, client: TestClient):
        response = client.post("/api/v1/photos/compress", files={"file": ("a.txt", b"hello", "text/plain")})
        assert response.status_code == 400
        assert response.json()["detail"] == "Only image files are allowed."

    def test_compress_too_large(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(config, "MAX_INPUT_BYTES", 1000)
        response = client.post("/api/v1/photos/compress", files={"file": jpeg_upload()})
        assert response.status_code == 413
        assert "too large" in response.json()["detail"]

    def test_quota(self, client: TestClient):
        response = client.get(
            "/api/v1/photos/quota",
            params={"total_photos": 12},
            headers={"X-User-Role": "guide"},
        )
        assert response.json() == {
            "total_photos": 12,
            "max_total": 200,
            "max_per_upload": 10,
            "remaining": 188,
        }


class TestBatchCompression:

    def test_failed_file_does_not_abort_batch(self, client: TestClient):
        files = [
            ("files", jpeg_upload("one.jpg")),
            ("files", ("broken.jpg", b"not really a jpeg", "image/jpeg")),
            ("files", jpeg_upload("three.jpg", size=(300, 300))),
        ]
        response = client.post("/api/v1/photos/compress/batch", files=files, data={"total_photos": "0"})
        assert response.status_code == 200
        data = response.json()

        assert data["successful_count"] == 2
        assert data["failed_count"] == 1
        statuses = [(r["original_filename"], r["status"]) for r in data["results"]]
        assert statuses == [("one.jpg", "success"), ("broken.jpg", "failed"), ("three.jpg", "success")]
        assert data["results"][1]["error"].startswith("Failed to load image")
        assert data["results"][2]["photo"]["width"] == 300

    def test_non_image_in_batch(self, client: TestClient):
        files = [("files", ("notes.txt", b"hello", "text/plain"))]
        data = client.post("/api/v1/photos/compress/batch", files=files).json()
        assert data["results"][0]["error"] == "Only image files are allowed."

    def test_per_upload_limit(self, client: TestClient):
        files = [("files", jpeg_upload(f"{i}.jpg", size=(20, 20))) for i in range(6)]
        response = client.post("/api/v1/photos/compress/batch", files=files)
        assert response.status_code == 400
        assert response.json()["detail"] == "Maximum 5 photos per upload for your role."

    def test_total_quota(self, client: TestClient):
        files = [("files", jpeg_upload(f"{i}.jpg", size=(20, 20))) for i in range(3)]
        response = client.post("/api/v1/photos/compress/batch", files=files, data={"total_photos": "48"})
        assert response.status_code == 400
        assert response.json()["detail"] == "You can only upload 2 more photos. Your limit is 50 total photos."

    def test_batches_are_rate_limited(self, client: TestClient):
        files = [("files", jpeg_upload("a.jpg", size=(20, 20)))]
        headers = {"X-User-Id": "uploader"}
        for _ in range(30):
            assert client.post("/api/v1/photos/compress/batch", files=files, headers=headers).status_code == 200

        response = client.post("/api/v1/photos/compress/batch", files=files, headers=headers)
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "3600"

    def test_unstorable_result_is_reported_failed(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(config, "MAX_STORED_BYTES", 10)
        files = [("files", jpeg_upload("big.jpg", size=(300, 300)))]
        data = client.post("/api/v1/photos/compress/batch", files=files).json()
        assert data["successful_count"] == 0
        assert data["failed_count"] == 1
        assert data["results"][0]["status"] == "failed"
        assert data["results"][0]["error"] == NOT_STORABLE_MESSAGE

    def test_each_photo_reports_its_own_compression_time(self, client: TestClient):
        files = [("files", jpeg_upload(f"{i}.jpg")) for i in range(2)]
        data = client.post("/api/v1/photos/compress/batch", files=files).json()
        assert data["successful_count"] == 2
        for result in data["results"]:
            assert result["photo"]["compression_time"] > 0

    def test_uploader_header_stays_inside_storage_folder(self, client: TestClient):
        files = [("files", jpeg_upload("a.jpg", size=(20, 20)))]
        headers = {"X-User-Id": "../../etc"}
        data = client.post("/api/v1/photos/compress/batch", files=files, headers=headers).json()
        storage = data["results"][0]["photo"]["storage"]
        for path in (storage["path"], storage["thumbnail_path"]):
            assert ".." not in path
            assert path.startswith("photos/")
            assert path.count("/") == 4


class TestLimitEndpoints:

    def test_list_presets(self, client: TestClient):
        data = client.get("/api/v1/limits").json()
        assert data["SEARCH"] == {"max_requests": 30, "window_ms": 60000}

    def test_allowed(self, client: TestClient):
        response = client.post("/api/v1/limits/thread", headers={"X-User-Id": "u1"})
        assert response.status_code == 200
        data = response.json()
        assert data["allowed"] is True
        assert data["remaining"] == 4
        assert data["action"] == "THREAD"
        assert response.headers["X-RateLimit-Remaining"] == "4"

    def test_denied_with_retry_after(self, client: TestClient, clock):
        headers = {"X-User-Id": "u1"}
        for _ in range(30):
            client.post("/api/v1/limits/search", headers=headers)
            clock.advance(1000)

        response = client.post("/api/v1/limits/search", headers=headers)
        assert response.status_code == 429
        # Oldest entry was 30s ago in a 60s window
        assert response.headers["Retry-After"] == "30"
        assert response.json()["detail"] == "You're doing that too much. Please try again in 30 seconds."
        assert "u1" not in response.json()["detail"]

    def test_actors_are_isolated(self, client: TestClient):
        for _ in range(3):
            client.post("/api/v1/limits/password_change", headers={"X-User-Id": "a"})
        assert client.post("/api/v1/limits/password_change", headers={"X-User-Id": "a"}).status_code == 429
        assert client.post("/api/v1/limits/password_change", headers={"X-User-Id": "b"}).status_code == 200

    def test_unknown_action(self, client: TestClient):
        assert client.post("/api/v1/limits/teleport").status_code == 404
