import tempfile
import unittest
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.backend.albums.api import create_albums_router
from src.backend.app import create_app
from src.backend.fs.storage import AlbumStorageManager
from src.backend.retention import SweeperState
from src.backend.settings.models import StorageSettings
from src.backend.settings.store import SettingsStore
from src.backend.upload import UploadPipeline


PNG = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + b"\x00" * 64
TEXT = b"hello, this is definitely not an image\n"


class AlbumsApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.storage = AlbumStorageManager(Path(self._tmp.name), max_file_size=1024)
        self.app = FastAPI()
        self.app.include_router(
            create_albums_router(storage=self.storage, pipeline=UploadPipeline(self.storage), page_size=2)
        )
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self._tmp.cleanup()

    def _upload(self, *payloads: bytes, album_id: str | None = None):
        files = [("images", (f"f{i}.png", data, "image/png")) for i, data in enumerate(payloads)]
        data = {"album_id": album_id} if album_id else {}
        return self.client.post("/api/upload", files=files, data=data)


class TestUploadAndList(AlbumsApiTestCase):
    def test_upload_mints_session_and_creates_album(self) -> None:
        resp = self._upload(PNG, PNG, PNG)

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["uploaded"], 3)
        owner = self.client.cookies.get("session_id")
        self.assertIsNotNone(owner)
        self.assertEqual(len(self.storage.list_images(owner, body["album_id"])), 3)

        albums = self.client.get("/api/albums").json()
        self.assertEqual([a["id"] for a in albums], [body["album_id"]])
        self.assertEqual(albums[0]["image_count"], 3)

    def test_pages_are_clamped(self) -> None:
        album_id = self._upload(PNG, PNG, PNG).json()["album_id"]

        first = self.client.get(f"/api/albums/{album_id}/images", params={"page": 0}).json()
        self.assertEqual(first["total_pages"], 2)
        self.assertEqual(len(first["images"]), 2)

        beyond = self.client.get(f"/api/albums/{album_id}/images", params={"page": 9}).json()
        self.assertEqual(beyond["page"], 1)
        self.assertEqual(len(beyond["images"]), 1)

    def test_sequential_failure_maps_to_status(self) -> None:
        resp = self._upload(TEXT)
        self.assertEqual(resp.status_code, 415)

        resp = self._upload(b"\x89PNG\r\n\x1a\n" + b"\x00" * 2048)
        self.assertEqual(resp.status_code, 413)

    def test_concurrent_partial_failure_is_multi_status(self) -> None:
        resp = self._upload(PNG, PNG, TEXT, PNG, PNG, PNG)

        self.assertEqual(resp.status_code, 207)
        body = resp.json()
        self.assertEqual(body["uploaded"], 5)
        self.assertEqual([e["index"] for e in body["errors"]], [2])

    def test_failed_upload_still_hands_out_minted_session(self) -> None:
        resp = self._upload(PNG, TEXT)

        self.assertEqual(resp.status_code, 415)
        owner = resp.cookies.get("session_id")
        self.assertIsNotNone(owner)
        body = resp.json()
        self.assertEqual(body["uploaded"], 1)
        self.assertIn("error", body)
        self.assertEqual(len(self.storage.list_images(owner, body["album_id"])), 1)

        albums = self.client.get("/api/albums").json()
        self.assertEqual([a["id"] for a in albums], [body["album_id"]])

    def test_serve_and_delete_image(self) -> None:
        body = self._upload(PNG).json()
        album_id = body["album_id"]
        filename = body["images"][0]["filename"]

        served = self.client.get(f"/image/{album_id}/{filename}")
        self.assertEqual(served.status_code, 200)
        self.assertEqual(served.content, PNG)

        self.assertEqual(self.client.delete(f"/api/albums/{album_id}/images/{filename}").status_code, 200)
        self.assertEqual(self.client.get(f"/image/{album_id}/{filename}").status_code, 404)

    def test_delete_album_and_user(self) -> None:
        album_id = self._upload(PNG, PNG).json()["album_id"]

        resp = self.client.delete(f"/api/albums/{album_id}")
        self.assertEqual(resp.json(), {"deleted": 2})
        self.assertEqual(self.client.delete(f"/api/albums/{album_id}").status_code, 404)

        self._upload(PNG)
        self.assertEqual(self.client.delete("/api/me").json(), {"deleted": 1})
        self.assertEqual(self.client.get("/api/albums").json(), [])

    def test_no_session_sees_nothing(self) -> None:
        self.assertEqual(self.client.get("/api/albums").json(), [])
        self.assertEqual(self.client.delete("/api/me").status_code, 404)


class TestUntrustedSegments(AlbumsApiTestCase):
    UNSAFE = (".", "..", "../x")

    def setUp(self) -> None:
        super().setUp()
        body = self._upload(PNG).json()
        self.victim = self.client.cookies.get("session_id")
        self.album_id = body["album_id"]
        self.filename = body["images"][0]["filename"]
        self.other = TestClient(self.app)

    def tearDown(self) -> None:
        self.other.close()
        super().tearDown()

    def _victim_images(self) -> int:
        return len(self.storage.list_images(self.victim, self.album_id))

    def test_malformed_session_cookie_is_rejected(self) -> None:
        for value in self.UNSAFE:
            with self.subTest(cookie=value):
                headers = {"Cookie": f"session_id={value}"}
                self.assertEqual(self.other.delete("/api/me", headers=headers).status_code, 400)
                self.assertEqual(self.other.get("/api/albums", headers=headers).status_code, 400)
                resp = self.other.post(
                    "/api/upload",
                    files=[("images", ("a.png", PNG, "image/png"))],
                    headers=headers,
                )
                self.assertEqual(resp.status_code, 400)

        self.assertTrue(self.storage.data_root.is_dir())
        self.assertEqual(self._victim_images(), 1)
        self.assertEqual(self.storage.count_images(), 1)

    def test_malformed_album_form_field_is_rejected(self) -> None:
        for value in self.UNSAFE + (f"../{self.victim}/{self.album_id}",):
            with self.subTest(album_id=value):
                resp = self.other.post(
                    "/api/upload",
                    files=[("images", ("a.png", PNG, "image/png"))],
                    data={"album_id": value},
                )
                self.assertEqual(resp.status_code, 400)
                self.assertIsNone(resp.cookies.get("session_id"))

        self.assertEqual(self._victim_images(), 1)
        self.assertEqual(self.storage.count_images(), 1)

    def test_malformed_path_parameters_are_not_found(self) -> None:
        urls = [
            "/api/albums/%2E",
            "/api/albums/%2E%2E",
            "/api/albums/..%2Fx",
            "/api/albums/%2E%2E/images/" + self.filename,
            f"/api/albums/{self.album_id}/images/%2E",
            f"/api/albums/{self.album_id}/images/%2E%2E",
            f"/api/albums/{self.album_id}/images/..%2Fx",
        ]
        for url in urls:
            with self.subTest(url=url):
                self.assertEqual(self.client.delete(url).status_code, 404)

        self.assertEqual(self.client.get("/api/albums/%2E%2E/images").status_code, 404)
        self.assertEqual(self.client.get(f"/image/%2E%2E/{self.filename}").status_code, 404)
        self.assertEqual(self.client.get(f"/image/{self.album_id}/%2E%2E").status_code, 404)
        self.assertEqual(self._victim_images(), 1)


class TestCreateApp(unittest.TestCase):
    def test_lifespan_starts_and_stops_sweeper(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            config_path = Path(tmpdir) / "storage.json"
            SettingsStore(path=config_path).save(StorageSettings(data_root=str(Path(tmpdir) / "data")))
            app = create_app(config_path=config_path)

            with TestClient(app) as client:
                self.assertEqual(app.state.sweeper.state, SweeperState.RUNNING)
                self.assertEqual(client.get("/api/albums").status_code, 200)
                self.assertTrue((Path(tmpdir) / "data").is_dir())

            self.assertEqual(app.state.sweeper.state, SweeperState.STOPPED)


if __name__ == "__main__":
    unittest.main()
