"""Client side of the generation backend: connectivity check and file requests."""

from __future__ import annotations

import logging
import os
import socket
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

import requests

BACKEND_PORT = 8000
DEFAULT_NEGATIVE_PROMPT = "Low quality, average quality"

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationPayload:
    """Body of a generation request."""

    prompt: str
    negative_prompt: str = DEFAULT_NEGATIVE_PROMPT
    filename: str = ""

    def to_dict(self) -> dict[str, str]:
        """Return the JSON form sent to the backend."""
        return {
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "client_output_path": self.filename,
        }


def _api_base() -> str:
    base = os.environ.get("API_URL")
    if base is None:
        raise RuntimeError("API_URL must be defined")
    return base


def api_url(endpoint: str) -> str:
    """Join ``endpoint`` onto the ``API_URL`` environment variable and validate it."""
    url = _api_base() + endpoint
    parts = urlsplit(url)
    if not parts.scheme or ":" not in url:
        raise ValueError(f"relative URL without a base: {url!r}")
    if parts.scheme in ("http", "https") and not parts.hostname:
        raise ValueError(f"empty host in URL: {url!r}")
    return url


def check_backend() -> None:
    """Open a TCP connection to the backend port; raise ``OSError`` if it fails."""
    log.info("checking backend connection...")
    base = _api_base()
    host = urlsplit(base).hostname or base
    with socket.create_connection((host, BACKEND_PORT)):
        pass


def request_response_stream(prompt: str, output_path: str | os.PathLike) -> Iterator[str]:
    """Request a generation and write the reply to ``output_path``.

    Yields progress percentages as strings, then the size in bytes of the file written.
    """
    yield "33.0"

    headers = {
        "Connection": "keep-alive",
        "keep-alive": "timeout=300, max=50",
    }
    payload = GenerationPayload(prompt=prompt)
    log.info("built request payload.")
    yield "66.0"

    response = requests.post(api_url("generate"), headers=headers, json=payload.to_dict())
    log.info("received generate request.")
    yield "99.0"

    log.info("building file...")
    body = response.content
    Path(output_path).write_bytes(body)
    log.info("response file successfully built.")
    yield str(len(body))