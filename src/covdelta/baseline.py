"""Fetch previously published coverage reports to compare against."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import requests

from covdelta.adapters.coverage.base import ReportParseError
from covdelta.adapters.coverage.istanbul import IstanbulReportParser

if TYPE_CHECKING:
    from covdelta.adapters.coverage.base import CoverageReportParser
    from covdelta.models.coverage import CoverageReport, PackageIdentifier

logger = logging.getLogger(__name__)

DEFAULT_BASELINE_URL = "https://coverage.stdlib.io/{package}/lib/index.html"

_HTTP_NOT_FOUND = 404


class BaselineStore:
    """Read-only HTTP store of published coverage reports, keyed by package.

    Any failure (missing resource, network error, unparseable page) means
    "no baseline" and is never propagated.
    """

    def __init__(
        self,
        url_template: str = DEFAULT_BASELINE_URL,
        *,
        timeout: float = 30.0,
        parser: CoverageReportParser | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._url_template = url_template
        self._timeout = timeout
        self._parser = parser or IstanbulReportParser()
        self._session = session or requests.Session()

    def url_for(self, package: PackageIdentifier) -> str:
        return self._url_template.format(package=package.name)

    def fetch(self, package: PackageIdentifier) -> CoverageReport | None:
        """Return the published report for *package*, or None if unavailable."""
        url = self.url_for(package)
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning("Could not fetch baseline for %s: %s", package.name, exc)
            return None

        if response.status_code == _HTTP_NOT_FOUND:
            logger.info("No published baseline for %s", package.name)
            return None
        if not response.ok:
            logger.warning(
                "Baseline request for %s returned HTTP %d", package.name, response.status_code
            )
            return None

        try:
            return self._parser.parse_text(response.text)
        except ReportParseError as exc:
            logger.warning("Ignoring unparseable baseline for %s: %s", package.name, exc)
            return None
