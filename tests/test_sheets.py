"""
Tests for the public spreadsheet reader.

All tests use a mocked requests session so no real HTTP calls are made.
"""

from unittest.mock import MagicMock, patch
from urllib.parse import quote

import pytest
import requests

from modmap.config import SourceConfig
from modmap.errors import FetchExhaustedError
from modmap.sheets import SheetsReader, export_url, fetch_csv_text, read_public_spreadsheet

CSV_TEXT = 'Module,Application,Team\nmod-a,App,T1\nmod-b,"App, Two",T1\n'


def _response(text="", status_error=None):
    resp = MagicMock()
    resp.text = text
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    return resp


def _session(*results):
    session = MagicMock()
    session.get.side_effect = list(results)
    return session


class TestExportUrl:
    def test_gid(self):
        assert export_url("abc", "123") == "https://docs.google.com/spreadsheets/d/abc/export?format=csv&gid=123"

    def test_sheet_name_falls_back_to_first_sheet(self):
        assert export_url("abc", "Sheet1").endswith("gid=0")


class TestFetchCsvText:
    def test_raises_on_http_error(self):
        session = _session(_response(status_error=requests.HTTPError("404")))
        with pytest.raises(requests.HTTPError):
            fetch_csv_text("https://x", session=session)

    def test_passes_timeout(self):
        session = _session(_response("a,b"))
        assert fetch_csv_text("https://x", session=session, timeout=3) == "a,b"
        session.get.assert_called_once_with("https://x", timeout=3)


class TestSheetsReader:
    def test_direct_success(self):
        session = _session(_response(CSV_TEXT))
        reader = SheetsReader(SourceConfig(), session=session)

        rows = reader.read_public_spreadsheet("abc")

        assert rows[0] == ["Module", "Application", "Team"]
        assert rows[2] == ["mod-b", "App, Two", "T1"]
        assert session.get.call_count == 1

    def test_as_objects(self):
        reader = SheetsReader(SourceConfig(), session=_session(_response(CSV_TEXT)))
        records = reader.read_public_spreadsheet("abc", as_objects=True)
        assert records[1] == {"module": "mod-b", "application": "App, Two", "team": "T1"}

    def test_falls_back_to_proxy(self):
        session = _session(
            requests.ConnectionError("blocked"),
            _response(CSV_TEXT),
        )
        reader = SheetsReader(SourceConfig(proxies=("https://proxy/?url=",)), session=session)

        rows = reader.read_public_spreadsheet("abc", "7")

        assert len(rows) == 3
        proxied = session.get.call_args_list[1].args[0]
        assert proxied == "https://proxy/?url=" + quote(export_url("abc", "7"), safe="")

    def test_all_sources_fail(self):
        session = _session(
            requests.ConnectionError("blocked"),
            _response(status_error=requests.HTTPError("500")),
            requests.Timeout("slow"),
        )
        source = SourceConfig(proxies=("https://p1/?u=", "https://p2/?u="))
        reader = SheetsReader(source, session=session)

        with pytest.raises(FetchExhaustedError) as excinfo:
            reader.read_public_spreadsheet("abc")

        assert [label for label, _ in excinfo.value.attempts] == ["direct", "https://p1/?u=", "https://p2/?u="]

    def test_no_proxy_means_single_attempt(self):
        session = _session(requests.ConnectionError("blocked"))
        reader = SheetsReader(SourceConfig(use_proxy=False), session=session)

        with pytest.raises(FetchExhaustedError):
            reader.fetch("https://x")
        assert session.get.call_count == 1

    def test_multiple_sheets_tolerates_failures(self):
        session = _session(_response(CSV_TEXT), requests.ConnectionError("blocked"))
        reader = SheetsReader(SourceConfig(use_proxy=False), session=session)

        results = reader.read_multiple_sheets("abc", ["0", "1"])

        assert len(results["0"]) == 3
        assert results["1"] == []


def test_module_level_helper_returns_records():
    with patch("modmap.sheets.requests.Session") as session_cls:
        session_cls.return_value = _session(_response(CSV_TEXT))
        records = read_public_spreadsheet("abc")
    assert [r["module"] for r in records] == ["mod-a", "mod-b"]
