"""
Upload tests: multipart and two-step uploads, and serving files back.
"""

import io


class TestUploads:
    def test_direct_upload_and_serve(self, client, admin_headers):
        resp = client.post(
            "/api/uploads/direct",
            data={"file": (io.BytesIO(b"\x89PNG fake"), "photo.PNG")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        path = resp.json["object_path"]
        assert path.startswith("/uploads/")
        assert path.endswith(".png")

        served = client.get(path)
        assert served.status_code == 200
        assert served.data == b"\x89PNG fake"

    def test_direct_upload_without_file(self, client, admin_headers):
        resp = client.post("/api/uploads/direct", data={}, headers=admin_headers, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_two_step_upload(self, client, admin_headers):
        reserved = client.post("/api/uploads/request-url", json={"name": "banner.jpg"}, headers=admin_headers).json
        assert reserved["upload_url"].startswith("/api/uploads/")
        assert reserved["object_path"].endswith(".jpg")

        resp = client.put(reserved["upload_url"], data=b"jpeg-bytes", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["object_path"] == reserved["object_path"]

        name = reserved["object_path"].rsplit("/", 1)[1]
        assert client.get(f"/objects/{name}").data == b"jpeg-bytes"

    def test_put_rejects_unsafe_name(self, client, admin_headers):
        resp = client.put("/api/uploads/..hidden", data=b"x", headers=admin_headers)
        assert resp.status_code == 400

    def test_upload_requires_staff(self, client, shop_headers):
        resp = client.post("/api/uploads/request-url", json={"name": "a.jpg"}, headers=shop_headers)
        assert resp.status_code == 401

    def test_missing_object(self, client, db_session):
        resp = client.get("/objects/does-not-exist.png")
        assert resp.status_code == 404
        assert resp.json == {"error": "File not found"}
