import io
import tarfile
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from cloudlet.loader import (
    TOKEN_ENDPOINT,
    ImageLoaderError,
    LayersNotFoundError,
    ManifestNotFoundError,
    UnsupportedArchitectureError,
    get_docker_download_token,
    unpack_tarball,
)


def _tarball(files):
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
        for name, content in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(content)
            archive.addfile(info, io.BytesIO(content))
    buffer.seek(0)
    return buffer


def test_manifest_not_found_message():
    error = ManifestNotFoundError("alpine", "latest")
    assert str(error) == "Could not find Docker v2 or OCI manifest for `alpine:latest`"
    assert isinstance(error, ImageLoaderError)


def test_unsupported_architecture_message():
    error = UnsupportedArchitectureError("amd64")
    assert str(error) == "This image doesn't support amd64 architecture"


def test_layers_not_found_message():
    assert str(LayersNotFoundError()) == "Could not find image layers in the manifest"


def test_unpack_tarball_round_trip(tmp_path):
    files = {"hello.txt": b"hello", "etc/os-release": b"ID=test\n"}
    unpack_tarball(_tarball(files), tmp_path)
    for name, content in files.items():
        assert (tmp_path / name).read_bytes() == content


def test_unpack_tarball_invalid_data(tmp_path):
    with pytest.raises(ImageLoaderError, match="Failed to unpack tarball"):
        unpack_tarball(io.BytesIO(b"definitely not a tarball"), tmp_path)


def test_get_token():
    session = requests.Session()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TOKEN_ENDPOINT, json={"token": "token"})
        fetched = get_docker_download_token(session, "alpine")
        url = rsps.calls[0].request.url
    assert fetched == "token"
    query = parse_qs(urlparse(url).query)
    assert query["service"] == ["registry.docker.io"]
    assert query["scope"] == ["repository:library/alpine:pull"]


def test_get_token_missing_field():
    session = requests.Session()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TOKEN_ENDPOINT, json={"other": "value"})
        with pytest.raises(ImageLoaderError, match="Failed to get token"):
            get_docker_download_token(session, "alpine")


def test_get_token_invalid_json():
    session = requests.Session()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TOKEN_ENDPOINT, body="not json")
        with pytest.raises(ImageLoaderError, match="Failed to parse JSON"):
            get_docker_download_token(session, "alpine")


def test_get_token_connection_error():
    session = requests.Session()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, TOKEN_ENDPOINT, body=requests.ConnectionError("down"))
        with pytest.raises(ImageLoaderError, match="Could not send request"):
            get_docker_download_token(session, "alpine")