"""Firmware image download and size check."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import httpx

from beaconprov.core.errors import FirmwareFetchError, FirmwareIntegrityError
from beaconprov.core.settings import FirmwareSettings

LOGGER = logging.getLogger(__name__)


class FirmwareCache:
    """Keeps one downloaded copy of each named firmware image.

    Images are identified by name only; the single integrity check is the
    exact byte size published alongside the image name.
    """

    def __init__(
        self,
        settings: FirmwareSettings,
        cache_dir: Path,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings
        self.cache_dir = cache_dir
        self._transport = transport

    @property
    def path(self) -> Path:
        return self.cache_dir / self.settings.name

    def ensure(self) -> Path:
        """Return the cached image path, downloading it first if needed."""
        if not self.path.exists():
            self._download()
        self.check()
        return self.path

    def check(self) -> None:
        size = self.path.stat().st_size
        if size != self.settings.size:
            raise FirmwareIntegrityError(
                f"Firmware {self.path} is {size} bytes, expected {self.settings.size}. "
                "Delete it to force a fresh download."
            )

    def _download(self) -> None:
        url = self.settings.url
        LOGGER.info("Downloading firmware %s", url)
        tmp_path = self.path.with_name(self.path.name + ".part")
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            with httpx.Client(
                timeout=self.settings.timeout_s,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                with client.stream("GET", url) as response:
                    response.raise_for_status()
                    with tmp_path.open("wb") as handle:
                        for chunk in response.iter_bytes():
                            handle.write(chunk)
            os.replace(tmp_path, self.path)
        except httpx.HTTPError as exc:
            tmp_path.unlink(missing_ok=True)
            raise FirmwareFetchError(f"Could not download firmware from {url}: {exc}") from exc
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise FirmwareFetchError(f"Could not store firmware in {self.cache_dir}: {exc}") from exc
