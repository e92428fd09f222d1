"""Client for the remote time authority."""

import logging
import re
from datetime import datetime
from typing import Optional

import requests

log = logging.getLogger(__name__)

# Wire format of the "date" field: yyyy-MM-dd hh:mm:ss AM/PM, local time zone
SERVER_DATE_FORMAT = "%Y-%m-%d %I:%M:%S %p"
_SERVER_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} (AM|PM)$")


class TimeServerError(Exception):
    """Transport failure or non-2xx response from the time authority."""


class ResponseParseError(Exception):
    """Missing or malformed response body or date string."""


def parse_server_date(text: str) -> datetime:
    """Parse the server's date string, rejecting anything off-format."""
    if not isinstance(text, str) or not _SERVER_DATE_RE.match(text):
        raise ResponseParseError(f"Unexpected date format: {text!r}")
    try:
        return datetime.strptime(text, SERVER_DATE_FORMAT)
    except ValueError as e:
        raise ResponseParseError(f"Invalid date {text!r}: {e}") from e


class TimeServerClient:
    """Fetches the current date from the time authority over HTTP."""

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = url
        self.timeout = timeout
        self._session = session or requests.Session()

    def fetch_date(self, timezone: str) -> datetime:
        """GET the server date for the given IANA time zone.

        Raises:
            TimeServerError: on transport errors or a status outside 200-299.
            ResponseParseError: if the body or its date field is unusable.
        """
        try:
            response = self._session.get(
                self.url,
                params={"timezone": timezone},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TimeServerError(f"Request to {self.url} failed: {e}") from e

        if not 200 <= response.status_code <= 299:
            raise TimeServerError(f"Time server returned HTTP {response.status_code}")

        if not response.content:
            raise ResponseParseError("Empty response body")

        try:
            data = response.json()
        except ValueError as e:
            raise ResponseParseError(f"Invalid JSON: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("date"), str):
            raise ResponseParseError("Response has no 'date' string")

        server_date = parse_server_date(data["date"])
        log.debug(f"Server date for {timezone}: {server_date}")
        return server_date

    def close(self) -> None:
        self._session.close()
