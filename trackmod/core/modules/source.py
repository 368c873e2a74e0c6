from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import requests

from trackmod.core.errors import TransportFailure


class ArtifactSource(Protocol):
    def fetch(self, url: str) -> bytes: ...


@dataclass
class HttpArtifactSource:
    """
    Plain GET against the module's download URL. Redirects follow requests' defaults;
    no auth, no range requests, no retries.
    """

    timeout_seconds: float = 60.0
    chunk_bytes: int = 65536
    user_agent: str = "trackmod-installer/0.1"

    def fetch(self, url: str) -> bytes:
        headers = {"User-Agent": self.user_agent}
        try:
            with requests.get(url, headers=headers, timeout=self.timeout_seconds, stream=True) as r:
                if not (200 <= r.status_code < 300):
                    raise TransportFailure(
                        f"Download failed with HTTP {r.status_code}.",
                        url=url,
                        status=r.status_code,
                    )
                buf = bytearray()
                for chunk in r.iter_content(chunk_size=self.chunk_bytes):
                    if chunk:
                        buf.extend(chunk)
                return bytes(buf)
        except requests.RequestException as e:
            raise TransportFailure(url=url, error=str(e)[:200]) from e
