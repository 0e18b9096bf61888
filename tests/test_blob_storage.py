"""
Blob storage gateway tests.

All outbound HTTP is mocked by injecting a MagicMock ``session`` into
VercelBlobGateway; LocalBlobStorage writes under pytest's tmp_path.
"""

import io
from unittest.mock import MagicMock

import pytest
import requests

from dairy_portal.integrations.blob_storage import (
    BlobStorageError,
    LocalBlobStorage,
    VercelBlobGateway,
)


def _response(status=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = payload or {}
    resp.text = text
    return resp


@pytest.fixture()
def http():
    return MagicMock()


@pytest.fixture()
def gateway(http):
    return VercelBlobGateway(token="vercel_blob_rw_test", api_url="https://blob.test/", session=http)


class TestVercelBlobGateway:
    def test_requires_token(self):
        with pytest.raises(BlobStorageError):
            VercelBlobGateway(token="")

    def test_put_sends_bytes_and_headers(self, gateway, http):
        http.request.return_value = _response(payload={
            "url": "https://store.blob.test/templates/2024-25/esg.xlsx",
            "pathname": "templates/2024-25/esg.xlsx",
            "contentType": "application/vnd.ms-excel",
        })
        result = gateway.put("templates/2024-25/esg.xlsx", io.BytesIO(b"abc"), "application/vnd.ms-excel")

        method, url = http.request.call_args.args
        kwargs = http.request.call_args.kwargs
        assert method == "PUT"
        assert url == "https://blob.test/templates/2024-25/esg.xlsx"
        assert kwargs["data"] == b"abc"
        assert kwargs["headers"]["Authorization"] == "Bearer vercel_blob_rw_test"
        assert kwargs["headers"]["x-content-type"] == "application/vnd.ms-excel"
        assert kwargs["headers"]["x-add-random-suffix"] == "1"
        assert result.url == "https://store.blob.test/templates/2024-25/esg.xlsx"
        assert result.size == 3

    def test_http_error_raises(self, gateway, http):
        http.request.return_value = _response(status=403, text="forbidden")
        with pytest.raises(BlobStorageError, match="403"):
            gateway.put("x.xlsx", b"abc")

    def test_network_error_raises(self, gateway, http):
        http.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(BlobStorageError, match="unreachable"):
            gateway.put("x.xlsx", b"abc")

    def test_missing_url_in_response(self, gateway, http):
        http.request.return_value = _response(payload={"pathname": "x.xlsx"})
        with pytest.raises(BlobStorageError):
            gateway.put("x.xlsx", b"abc")

    def test_delete_posts_url_list(self, gateway, http):
        http.request.return_value = _response()
        gateway.delete("https://store.blob.test/x.xlsx")
        method, url = http.request.call_args.args
        assert (method, url) == ("POST", "https://blob.test/delete")
        assert http.request.call_args.kwargs["json"] == {"urls": ["https://store.blob.test/x.xlsx"]}

    def test_list_by_prefix(self, gateway, http):
        http.request.return_value = _response(payload={"blobs": [{"pathname": "drafts/1/a.xlsx"}]})
        assert gateway.list("drafts/1") == [{"pathname": "drafts/1/a.xlsx"}]
        assert http.request.call_args.kwargs["params"] == {"prefix": "drafts/1"}


class TestLocalBlobStorage:
    def test_put_list_delete(self, tmp_path):
        store = LocalBlobStorage(str(tmp_path), "/blobs")
        result = store.put("uploads/3/2024-25/report.xlsx", b"hello")
        assert result.url == "/blobs/uploads/3/2024-25/report.xlsx"
        assert (tmp_path / "uploads/3/2024-25/report.xlsx").read_bytes() == b"hello"
        assert [b["pathname"] for b in store.list("uploads/")] == ["uploads/3/2024-25/report.xlsx"]

        store.delete(result.url)
        assert store.list() == []

    def test_same_pathname_never_overwrites(self, tmp_path):
        store = LocalBlobStorage(str(tmp_path), "/blobs")
        first = store.put("drafts/1/report.xlsx", b"DRAFT-ONE")
        second = store.put("drafts/1/report.xlsx", b"DRAFT-TWO")

        assert first.url == "/blobs/drafts/1/report.xlsx"
        assert second.url != first.url
        assert second.pathname.startswith("drafts/1/report-")
        assert second.pathname.endswith(".xlsx")
        assert (tmp_path / first.pathname).read_bytes() == b"DRAFT-ONE"
        assert (tmp_path / second.pathname).read_bytes() == b"DRAFT-TWO"

    def test_rejects_path_traversal(self, tmp_path):
        store = LocalBlobStorage(str(tmp_path / "root"))
        with pytest.raises(BlobStorageError):
            store.put("../escape.txt", b"x")

    def test_delete_foreign_url(self, tmp_path):
        store = LocalBlobStorage(str(tmp_path))
        with pytest.raises(BlobStorageError):
            store.delete("https://elsewhere/x.xlsx")


class TestBlobFailureSurface:
    def test_storage_failure_is_502_and_writes_nothing(self, app, client, regular_user, auth_headers):
        broken = MagicMock()
        broken.put.side_effect = BlobStorageError("boom")
        original = app.extensions["blob_storage"]
        app.extensions["blob_storage"] = broken
        try:
            res = client.post(
                "/api/v1/uploads",
                data={"file": (io.BytesIO(b"x"), "r.xlsx"), "financial_year": "2024-25"},
                headers=auth_headers(regular_user), content_type="multipart/form-data",
            )
        finally:
            app.extensions["blob_storage"] = original
        assert res.status_code == 502
        assert res.get_json()["code"] == "ERR_STORAGE"

        from dairy_portal.models.upload import Upload
        assert Upload.query.count() == 0
