"""Article fetchers for the DEV.to public API."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional

import requests

from .config import Config
from .errors import FetchError
from .models import CandidateRecord

LOGGER = logging.getLogger(__name__)


class ArticleFetcher:
    """Abstract base class for candidate providers."""

    name: str = "base"

    def fetch(self, config: Config) -> List[CandidateRecord]:
        raise NotImplementedError


def should_retry(status: int) -> bool:
    return status >= 500 or status == 429


def backoff_seconds(attempt: int) -> int:
    return 2 ** max(attempt - 1, 0)


class DevToFetcher(ArticleFetcher):
    """Page through ``/api/articles?top=N`` with bounded retries per page."""

    name = "devto"

    API_URL = "https://dev.to/api/articles"
    MAX_RETRIES = 3
    TIMEOUT = 15

    def __init__(self, sleep: Optional[Callable[[float], None]] = None) -> None:
        self.sleep = sleep or time.sleep

    def fetch(self, config: Config) -> List[CandidateRecord]:
        articles: List[CandidateRecord] = []
        for page in range(1, config.max_pages + 1):
            items = self.fetch_page(config, page)
            if not items:
                break
            articles.extend(items)
            if len(items) < config.per_page:
                break
        LOGGER.info("Fetched %d articles from DEV.to", len(articles))
        return articles

    def fetch_page(self, config: Config, page: int) -> List[CandidateRecord]:
        params = {"top": config.lookback_days, "per_page": config.per_page, "page": page}
        url = f"{self.API_URL}?top={config.lookback_days}&per_page={config.per_page}&page={page}"

        attempt = 0
        while True:
            attempt += 1
            try:
                response = requests.get(self.API_URL, params=params, timeout=self.TIMEOUT)
            except requests.RequestException as exc:
                if attempt < self.MAX_RETRIES:
                    self._wait(url, f"error={exc}", attempt)
                    continue
                raise FetchError(f"API request failed: url={url} error={exc} attempt={attempt}") from exc

            if response.ok:
                return self._parse(url, response)

            if should_retry(response.status_code) and attempt < self.MAX_RETRIES:
                self._wait(url, f"status={response.status_code}", attempt)
                continue
            raise FetchError(f"API request failed: url={url} status={response.status_code} attempt={attempt}")

    def _wait(self, url: str, reason: str, attempt: int) -> None:
        backoff = backoff_seconds(attempt)
        LOGGER.warning("Retrying API request: url=%s %s attempt=%d backoff=%ds", url, reason, attempt, backoff)
        self.sleep(backoff)

    @staticmethod
    def _parse(url: str, response: requests.Response) -> List[CandidateRecord]:
        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise FetchError(f"API returned invalid JSON: url={url}: {exc}") from exc
        if not isinstance(payload, list):
            raise FetchError(f"API returned {type(payload).__name__}, expected a list: url={url}")

        articles = []
        for item in payload:
            if not isinstance(item, dict):
                LOGGER.warning("Skipping non-object article payload on %s", url)
                continue
            articles.append(CandidateRecord.from_api(item))
        return articles
