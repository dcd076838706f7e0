import zipfile

import pytest
import requests

from config import StorageRoots


class FakeResponse:
    def __init__(self, content=b"", status_code=200, json_data=None):
        self.content = content
        self.status_code = status_code
        self.json_data = json_data
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.closed = True
        return False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Server Error")

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self.content), chunk_size):
            yield self.content[start : start + chunk_size]

    def json(self):
        if isinstance(self.json_data, Exception):
            raise self.json_data
        return self.json_data


class FakeHttp:
    """Stands in for the requests module: answers get() from a url table."""

    def __init__(self, responses=None):
        self.responses = responses or {}
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def roots(tmp_path):
    return StorageRoots(tmp_path / "data", tmp_path / "cache")


@pytest.fixture
def fake_http():
    return FakeHttp


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def make_zip(tmp_path):
    """Builds a zip from {name: bytes or None for a directory} and returns its bytes."""

    def build(entries, modes=None):
        modes = modes or {}
        path = tmp_path / "built.zip"
        with zipfile.ZipFile(path, "w") as zf:
            for name, data in entries.items():
                info = zipfile.ZipInfo(name)
                if data is None:
                    info.external_attr = (0o40755 << 16) | 0x10
                    zf.writestr(info, b"")
                else:
                    info.external_attr = modes.get(name, 0o100644) << 16
                    zf.writestr(info, data)
        content = path.read_bytes()
        path.unlink()
        return content

    return build
