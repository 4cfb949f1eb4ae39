"""Tests for fetching published coverage baselines."""

from __future__ import annotations

import pytest
import requests
import responses

from covdelta.baseline import DEFAULT_BASELINE_URL, BaselineStore
from covdelta.models.coverage import PackageIdentifier

_PACKAGE = PackageIdentifier(
    name="math/base/special/sin", path="lib/node_modules/@stdlib/math/base/special/sin"
)
_URL = "https://coverage.stdlib.io/math/base/special/sin/lib/index.html"

_PAGE = """
<div class='fl pad1y space-right2'><span class="fraction">90/100</span></div>
<div class='fl pad1y space-right2'><span class="fraction">10/10</span></div>
<div class='fl pad1y space-right2'><span class="fraction">5/5</span></div>
<div class='fl pad1y space-right2'><span class="fraction">90/100</span></div>
"""


@pytest.fixture()
def store() -> BaselineStore:
    return BaselineStore()


def test_url_for_default_template(store: BaselineStore) -> None:
    assert DEFAULT_BASELINE_URL.format(package=_PACKAGE.name) == _URL
    assert store.url_for(_PACKAGE) == _URL


def test_url_for_custom_template() -> None:
    store = BaselineStore("https://example.com/cov/{package}/summary.html")

    assert store.url_for(_PACKAGE) == "https://example.com/cov/math/base/special/sin/summary.html"


@responses.activate
def test_fetch_published_report(store: BaselineStore) -> None:
    responses.add(responses.GET, _URL, body=_PAGE, status=200)

    report = store.fetch(_PACKAGE)

    assert report is not None
    assert report.statements.display == "90/100"
    assert report.branches.display == "10/10"
    assert report.lines.display == "90/100"


@responses.activate
def test_fetch_not_found_returns_none(store: BaselineStore) -> None:
    responses.add(responses.GET, _URL, body="Not Found", status=404)

    assert store.fetch(_PACKAGE) is None


@responses.activate
def test_fetch_server_error_returns_none(store: BaselineStore) -> None:
    responses.add(responses.GET, _URL, status=503)

    assert store.fetch(_PACKAGE) is None


@responses.activate
def test_fetch_connection_error_returns_none(store: BaselineStore) -> None:
    responses.add(responses.GET, _URL, body=requests.ConnectionError("connection refused"))

    assert store.fetch(_PACKAGE) is None


@responses.activate
def test_fetch_unparseable_page_returns_none(store: BaselineStore) -> None:
    responses.add(responses.GET, _URL, body="<html><body>maintenance</body></html>", status=200)

    assert store.fetch(_PACKAGE) is None


@responses.activate
def test_fetch_requests_package_url() -> None:
    responses.add(responses.GET, _URL, body=_PAGE, status=200)
    store = BaselineStore(timeout=5.0)

    store.fetch(_PACKAGE)

    assert len(responses.calls) == 1
    assert responses.calls[0].request.url == _URL
