"""Helpers and errors for downloading and unpacking OCI image layers."""

from __future__ import annotations

import tarfile
from pathlib import Path
from typing import BinaryIO

import requests

TOKEN_ENDPOINT = "https://auth.docker.io/token"


class ImageLoaderError(Exception):
    """Raised when an image cannot be loaded."""


class ManifestNotFoundError(ImageLoaderError):
    """There is no manifest for the given image."""

    def __init__(self, image_name: str, tag: str) -> None:
        super().__init__(f"Could not find Docker v2 or OCI manifest for `{image_name}:{tag}`")
        self.image_name = image_name
        self.tag = tag


class UnsupportedArchitectureError(ImageLoaderError):
    """The image does not support the requested architecture."""

    def __init__(self, architecture: str) -> None:
        super().__init__(f"This image doesn't support {architecture} architecture")
        self.architecture = architecture


class LayersNotFoundError(ImageLoaderError):
    """The manifest has no layers to unpack."""

    def __init__(self) -> None:
        super().__init__("Could not find image layers in the manifest")


def _loading_error(message: str) -> ImageLoaderError:
    return ImageLoaderError(f"Image loading error: {message}")


def unpack_tarball(stream: BinaryIO, output_dir: str | Path) -> None:
    """Extract the gzip-compressed tar read from ``stream`` into ``output_dir``."""
    output_dir = Path(output_dir)
    try:
        with tarfile.open(fileobj=stream, mode="r|gz") as archive:
            if hasattr(tarfile, "data_filter"):
                archive.extractall(output_dir, filter="data")
            else:
                archive.extractall(output_dir)
    except (tarfile.TarError, OSError, EOFError) as exc:
        raise _loading_error(f"Failed to unpack tarball to {output_dir}") from exc


def get_docker_download_token(session: requests.Session, image_name: str) -> str:
    """Get a token for anonymous pulls of ``image_name`` from Docker Hub."""
    params = {
        "service": "registry.docker.io",
        "scope": f"repository:library/{image_name}:pull",
    }
    try:
        response = session.get(TOKEN_ENDPOINT, params=params)
    except requests.RequestException as exc:
        raise _loading_error("Could not send request for anonymous authentication") from exc
    try:
        body = response.json()
    except ValueError as exc:
        raise _loading_error(
            "Failed to parse JSON response for anonymous authentication"
        ) from exc

    token = body.get("token") if isinstance(body, dict) else None
    if not isinstance(token, str):
        raise _loading_error("Failed to get token from anon auth response")
    return token