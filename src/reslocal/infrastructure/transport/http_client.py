from __future__ import annotations

import logging
import shutil
from pathlib import Path

import requests
import urllib3
from requests.cookies import RequestsCookieJar
from urllib3.exceptions import InsecureRequestWarning

from reslocal.domain.models.fetch import HTTP_OK, NO_RESPONSE

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/99.0.4844.74 Safari/537.36",
    "DNT": "1",
    "Accept-Language": "ru,en-US;q=0.9,en;q=0.8,ru-RU;q=0.7",
}
CHUNK_SIZE = 64 * 1024


class HttpCookieClient:
    """Direct transport: a browser-like session with a shared cookie jar."""

    def __init__(
        self,
        timeout_seconds: float,
        *,
        ignore_ssl: bool = True,
        cookies: RequestsCookieJar | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = (timeout_seconds, timeout_seconds)
        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)
        if cookies is not None:
            self.session.cookies = cookies
        if ignore_ssl:
            self.session.verify = False
            urllib3.disable_warnings(InsecureRequestWarning)

    def download(self, url: str, temp_path: Path, destination: Path) -> int:
        logger.info("Querying %s", url)
        try:
            with self.session.get(url, timeout=self.timeout, stream=True) as response:
                code = response.status_code
                if code != HTTP_OK:
                    logger.warning("Response code is %s: %s", code, response.reason)
                    return code
                if self._matches_existing(destination, response.headers.get("Content-Length")):
                    logger.info("File already exists, size match: %s", destination)
                    shutil.copyfile(destination, temp_path)
                    return code
                with temp_path.open("wb") as out:
                    for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                        if chunk:
                            out.write(chunk)
                logger.debug("Wrote %s", temp_path)
                return code
        except (requests.RequestException, OSError) as exc:
            logger.warning("Unable to download %s: %s", url, exc)
            return NO_RESPONSE

    @staticmethod
    def _matches_existing(destination: Path, content_length: str | None) -> bool:
        if content_length is None or not content_length.strip().isdigit():
            return False
        if not destination.is_file():
            return False
        return destination.stat().st_size == int(content_length)

    def close(self) -> None:
        self.session.close()
