import asyncio

import pytest
from googleapiclient.errors import HttpError

from bagify.carousel.drive import DriveStorage
from bagify.core.errors import StorageError


class _Resp(dict):
    """Header mapping with the `status`/`reason` attributes googleapiclient reads."""

    def __init__(self, status, headers=None, reason="OK"):
        super().__init__(headers or {})
        self.status = status
        self.reason = reason


class _Http:
    def __init__(self, status, content):
        self.status = status
        self.content = content
        self.requests = []

    def request(self, uri, method="GET", **kwargs):
        self.requests.append((uri, method, kwargs.get("headers", {})))
        headers = {"content-length": str(len(self.content))}
        return _Resp(self.status, headers, reason="Not Found" if self.status == 404 else "OK"), self.content


class _MediaRequest:
    def __init__(self, http, file_id):
        self.http = http
        self.uri = f"https://www.googleapis.com/drive/v3/files/{file_id}?alt=media"
        self.headers = {"accept": "*/*"}


class _Call:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error

    def execute(self):
        if self.error is not None:
            raise self.error
        return self.result


class _Files:
    def __init__(self, list_result=None, list_error=None, http=None):
        self.list_result = list_result
        self.list_error = list_error
        self.http = http
        self.list_kwargs = None
        self.create_kwargs = None
        self.media_file_id = None

    def list(self, **kwargs):
        self.list_kwargs = kwargs
        return _Call(self.list_result, self.list_error)

    def create(self, **kwargs):
        self.create_kwargs = kwargs
        return _Call({"id": "new-file"})

    def get_media(self, fileId):
        self.media_file_id = fileId
        return _MediaRequest(self.http, fileId)


class _Service:
    def __init__(self, files):
        self._files = files

    def files(self):
        return self._files


def _storage(files):
    return DriveStorage(credentials=None, service_factory=lambda: _Service(files))


def test_list_files_queries_folder():
    files = _Files(list_result={"files": [{"id": "1", "name": "hermes-1.png"}]})

    result = asyncio.run(_storage(files).list_files("folder-x"))

    assert result == [{"id": "1", "name": "hermes-1.png"}]
    assert files.list_kwargs["q"] == "'folder-x' in parents and trashed=false"
    assert files.list_kwargs["pageSize"] == 100


def test_list_files_http_error_is_storage_error():
    error = HttpError(_Resp(403, reason="Forbidden"), b"forbidden")
    files = _Files(list_error=error)

    with pytest.raises(StorageError):
        asyncio.run(_storage(files).list_files("folder-x"))


def test_download_returns_file_bytes():
    http = _Http(200, b"bag-image-bytes")
    files = _Files(http=http)

    data = asyncio.run(_storage(files).download("file-7"))

    assert data == b"bag-image-bytes"
    assert files.media_file_id == "file-7"
    uri, method, headers = http.requests[0]
    assert uri.endswith("/files/file-7?alt=media")
    assert method == "GET"
    assert headers["range"].startswith("bytes=0-")


def test_download_http_error_is_storage_error():
    files = _Files(http=_Http(404, b"not found"))

    with pytest.raises(StorageError, match="Downloading Drive file failed"):
        asyncio.run(_storage(files).download("missing"))


def test_upload_sets_parent_folder():
    files = _Files()

    file_id = asyncio.run(_storage(files).upload("c_frame1.png", b"png", "image/png", "out-folder"))

    assert file_id == "new-file"
    assert files.create_kwargs["body"] == {"name": "c_frame1.png", "parents": ["out-folder"]}
    assert files.create_kwargs["fields"] == "id"
