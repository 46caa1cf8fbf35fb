"""Public Google Sheets CSV export reader.

Spreadsheets shared as "anyone with the link" can be exported as CSV
without credentials. Some networks block the export host, so the reader
can retry the same export URL through a list of pass-through proxies
(``proxy + quote(url)``) before giving up.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union
from urllib.parse import quote

import requests

from modmap.config import SourceConfig
from modmap.csv_parser import parse_csv
from modmap.errors import FetchExhaustedError
from modmap.records import Record, to_records

logger = logging.getLogger(__name__)

PUBLIC_BASE_URL = "https://docs.google.com/spreadsheets/d"


def export_url(spreadsheet_id: str, sheet: str = "0") -> str:
    """CSV export URL; a sheet given by name (not gid) falls back to the first sheet."""
    sheet = str(sheet).strip()
    gid = sheet if sheet.isdigit() else "0"
    return f"{PUBLIC_BASE_URL}/{spreadsheet_id}/export?format=csv&gid={gid}"


def fetch_csv_text(url: str, session: Optional[requests.Session] = None, timeout: float = 15.0) -> str:
    http = session or requests
    response = http.get(url, timeout=timeout)
    response.raise_for_status()
    return response.text


class SheetsReader:
    def __init__(self, source: Optional[SourceConfig] = None, session: Optional[requests.Session] = None) -> None:
        self.source = source or SourceConfig()
        self._session = session or requests.Session()

    def candidate_urls(self, url: str) -> List[Tuple[str, str]]:
        """``(label, url)`` pairs in the order they are tried."""
        candidates = [("direct", url)]
        if self.source.use_proxy:
            candidates.extend((proxy, proxy + quote(url, safe="")) for proxy in self.source.proxies)
        return candidates

    def fetch(self, url: str) -> str:
        attempts: List[Tuple[str, str]] = []
        for label, candidate in self.candidate_urls(url):
            try:
                text = fetch_csv_text(candidate, session=self._session, timeout=self.source.timeout)
            except requests.RequestException as exc:
                logger.warning("Failed to fetch CSV via %s: %s", label, exc)
                attempts.append((label, str(exc)))
                continue
            logger.info("Fetched %d bytes of CSV via %s", len(text), label)
            return text

        logger.error("All %d source(s) failed for %s", len(attempts), url)
        raise FetchExhaustedError(
            "All sources failed. The spreadsheet might not be public or accessible.",
            attempts=attempts,
        )

    def read_public_spreadsheet(
        self,
        spreadsheet_id: str,
        sheet: str = "0",
        as_objects: bool = False,
    ) -> Union[List[List[str]], List[Record]]:
        text = self.fetch(export_url(spreadsheet_id, sheet))
        rows = parse_csv(text)
        return to_records(rows) if as_objects else rows

    def read_multiple_sheets(
        self,
        spreadsheet_id: str,
        sheets: Iterable[str],
        as_objects: bool = False,
    ) -> Dict[str, list]:
        results: Dict[str, list] = {}
        for sheet in sheets:
            try:
                results[sheet] = self.read_public_spreadsheet(spreadsheet_id, sheet, as_objects=as_objects)
            except FetchExhaustedError:
                logger.exception("Error reading sheet %s", sheet)
                results[sheet] = []
        return results


def read_public_spreadsheet(
    spreadsheet_id: str,
    sheet: str = "0",
    as_objects: bool = True,
    source: Optional[SourceConfig] = None,
) -> Union[List[List[str]], List[Record]]:
    return SheetsReader(source).read_public_spreadsheet(spreadsheet_id, sheet, as_objects=as_objects)
