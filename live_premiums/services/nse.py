import json
import logging
from typing import Any, Callable, Dict, Optional

import requests

from live_premiums.core.config import Settings, settings as default_settings

# Set up logging
logger = logging.getLogger(__name__)

EXCERPT_LENGTH = 400

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"


class NseServiceError(Exception):
    """Base exception for NseService related errors"""
    pass


class UpstreamError(NseServiceError):
    """Raised when the option chain request fails or returns an error status"""
    pass


class UpstreamParseError(UpstreamError):
    """Raised when the option chain body is not a JSON object"""

    def __init__(self, message: str, excerpt: str = ""):
        super().__init__(message)
        self.excerpt = excerpt


class NseService:
    """Fetches option chain snapshots from the NSE website API.

    The API rejects requests that do not look like they come from a browser
    session, so every fetch first visits the landing page and then calls the
    option chain endpoint on the same session, reusing whatever cookies the
    landing page handed out.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        config = config or default_settings
        self.base_url = config.nse_base_url.rstrip("/")
        self.option_chain_path = config.nse_option_chain_path
        self.symbol = config.nse_symbol
        self.timeout = config.request_timeout_seconds
        self.session_factory = session_factory

    @property
    def option_chain_url(self) -> str:
        return f"{self.base_url}{self.option_chain_path}"

    def landing_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
            "Referer": self.base_url,
            "Connection": "keep-alive",
        }

    def api_headers(self) -> Dict[str, str]:
        return {
            "User-Agent": BROWSER_USER_AGENT,
            "Accept": "application/json, text/javascript, */*; q=0.01",
            "Accept-Language": "en-US,en;q=0.5",
            "Referer": f"{self.base_url}/get-quotes/derivatives",
            "Connection": "keep-alive",
        }

    def fetch(self) -> Dict[str, Any]:
        """
        Fetch one option chain snapshot.

        Returns:
            Dict[str, Any]: The parsed option chain document

        Raises:
            UpstreamError: If the request fails or returns an error status
            UpstreamParseError: If the response body is not a JSON object
        """
        with self.session_factory() as session:
            self._open_session(session)
            text = self._request_option_chain(session)
        return self.parse(text)

    def _open_session(self, session: requests.Session) -> None:
        # Landing page only sets cookies
        try:
            session.get(
                self.base_url,
                headers=self.landing_headers(),
                timeout=self.timeout,
                allow_redirects=False,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"NSE landing request failed, continuing without session cookies: {str(e)}")

    def _request_option_chain(self, session: requests.Session) -> str:
        try:
            logger.info(f"Fetching option chain for {self.symbol}")
            response = session.get(
                self.option_chain_url,
                params={"symbol": self.symbol},
                headers=self.api_headers(),
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.text

        except requests.exceptions.RequestException as e:
            logger.error(f"Option chain request for {self.symbol} failed: {str(e)}")
            raise UpstreamError(f"Option chain request for {self.symbol} failed") from e

    @staticmethod
    def parse(text: str) -> Dict[str, Any]:
        """Strictly parse an option chain body into a dict."""
        excerpt = (text or "")[:EXCERPT_LENGTH]
        try:
            data = json.loads((text or "").strip())
        except json.JSONDecodeError as e:
            logger.error(f"NSE parse error, snippet: {excerpt}")
            raise UpstreamParseError("Option chain response is not valid JSON", excerpt=excerpt) from e

        if not isinstance(data, dict):
            logger.error(f"NSE returned unexpected payload type {type(data).__name__}, snippet: {excerpt}")
            raise UpstreamParseError("Option chain response is not a JSON object", excerpt=excerpt)

        return data
