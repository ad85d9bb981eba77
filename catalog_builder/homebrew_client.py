from typing import Any, List, Optional
from urllib.parse import urljoin

import requests
from requests.adapters import HTTPAdapter
from urllib3 import Retry

from fairhub.errors import HTTPStatusError, ResponseDecodeError
from models.cask import CaskItem, CaskStats
from loggers.casks_logger import casks_logger as logger

STATS_WINDOWS = (30, 90, 365)


class HomebrewClient:
    def __init__(self, api_endpoint: str = "https://formulae.brew.sh/api/", timeout: int = 30,
                 max_retries: int = 3, session: Optional[requests.Session] = None) -> None:
        """
        api_endpoint is the base of the Homebrew JSON API, e.g. "https://formulae.brew.sh/api/".
        A full cask.json URL is accepted as well; sibling resources resolve against it.
        """
        self.api_endpoint = api_endpoint
        self.timeout = timeout

        if session is None:
            session = requests.Session()
            retries = Retry(
                total=max_retries,
                backoff_factor=0.5,
                status_forcelist=(429, 500, 502, 503, 504),
                allowed_methods=frozenset(["GET", "HEAD"]),
            )
            adapter = HTTPAdapter(max_retries=retries)
            session.mount("https://", adapter)
            session.mount("http://", adapter)
        self.session = session
        self.session.headers.update({"Accept": "application/json", "User-Agent": "fair-catalog"})

    @property
    def cask_list_url(self) -> str:
        return urljoin(self.api_endpoint, "cask.json")

    def stats_url(self, window: int = 30) -> str:
        if window not in STATS_WINDOWS:
            raise ValueError(f"Unsupported stats window {window}; expected one of {STATS_WINDOWS}")
        return urljoin(urljoin(self.api_endpoint, "analytics/cask-install/homebrew-cask/"), f"{window}d.json")

    def get_json(self, url: str) -> Any:
        resp = self.session.get(url, timeout=self.timeout)
        if resp.status_code >= 400:
            logger.error(f"Homebrew API error {resp.status_code} for {url}: {resp.text[:300]}")
            raise HTTPStatusError(resp.status_code, url, resp.text)
        try:
            return resp.json()
        except ValueError as e:
            raise ResponseDecodeError(url, str(e)) from e

    def fetch_casks(self) -> List[CaskItem]:
        url = self.cask_list_url
        payload = self.get_json(url)
        if not isinstance(payload, list):
            raise ResponseDecodeError(url, "expected a JSON array of casks")
        casks = []
        for raw in payload:
            try:
                casks.append(CaskItem.from_json(raw))
            except ValueError as e:
                logger.warning(f"skipping unreadable cask record: {e}")
        logger.info(f"fetched {len(casks)} casks from {url}")
        return casks

    def fetch_stats(self, window: int = 30) -> CaskStats:
        url = self.stats_url(window)
        payload = self.get_json(url)
        if not isinstance(payload, dict):
            raise ResponseDecodeError(url, "expected a JSON object of install stats")
        return CaskStats.from_json(payload)
