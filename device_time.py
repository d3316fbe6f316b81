"""
Device Time Extraction
Reads the calendar date a camera reports through its web interface.

Vendors expose device time through different endpoints and authentication
schemes, so extraction is an ordered chain of attempts:

1. Hikvision ISAPI fast path with digest auth (only when credentials exist)
2. A sweep over known Hikvision / Samsung / generic endpoints, escalating
   authentication (none -> basic -> digest -> query params -> header)
   only when the camera answers with a 401 challenge

The first attempt that yields a YYYY-MM-DD date wins.
"""

import base64
import logging
import re
from functools import partial
from typing import Callable, List, Optional

import requests
from requests.auth import HTTPBasicAuth, HTTPDigestAuth

logger = logging.getLogger("device_time")

# Hikvision ISAPI endpoints tried first, with digest auth
ISAPI_FAST_PATH_ENDPOINTS = [
    "/ISAPI/System/deviceInfo",
    "/ISAPI/System/time",
    "/ISAPI/System/status",
]

# Generic sweep, most specific first
SCRAPE_ENDPOINTS = [
    # Hikvision
    "/ISAPI/System/deviceInfo",
    "/ISAPI/System/time",
    "/ISAPI/Security/userCheck",
    "/doc/page/config.asp",
    "/doc/page/preview.asp",
    # Samsung
    "/stw-cgi/system.cgi?action=get",
    "/config/system.cgi",
    "/cgi-bin/systeminfo",
    # Common
    "/system",
    "/config",
    "/",
]

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.5",
}

DATE_RE = re.compile(r'(\d{4}-\d{2}-\d{2})')

ISAPI_XML_PATTERNS = [
    re.compile(r'<time>(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'<localTime>(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'<systemTime>(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'<currentTime>(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'time="(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
]

CGI_PATTERNS = [
    re.compile(r'date=(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'system_date=(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'current_date=(\d{4}-\d{2}-\d{2})', re.IGNORECASE),
    re.compile(r'"date":"(\d{4}-\d{2}-\d{2})"', re.IGNORECASE),
]

HTML_PATTERNS = [
    DATE_RE,
    re.compile(r'value="(\d{4}-\d{2}-\d{2})"'),
    re.compile(r'id=".*date.*".*value="(\d{4}-\d{2}-\d{2})"', re.IGNORECASE),
    re.compile(r'name=".*date.*".*value="(\d{4}-\d{2}-\d{2})"', re.IGNORECASE),
]

STATUS_MESSAGES = {
    400: "Bad request",
    401: "Authentication failed",
    403: "Access forbidden",
    404: "Endpoint not found",
}


# =============================================================================
# DATE PARSERS
# =============================================================================

def _first_match(text: str, patterns) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_date_from_isapi_xml(xml_data: str) -> Optional[str]:
    """Date from a Hikvision ISAPI XML document"""
    return _first_match(xml_data, ISAPI_XML_PATTERNS) or extract_date_generic(xml_data)


def extract_date_from_cgi(cgi_data: str) -> Optional[str]:
    """Date from a Samsung CGI key=value (or JSON) response"""
    return _first_match(cgi_data, CGI_PATTERNS) or extract_date_generic(cgi_data)


def extract_date_from_html(html: str) -> Optional[str]:
    """Date from a camera web page"""
    return _first_match(html, HTML_PATTERNS)


def extract_date_generic(data: str) -> Optional[str]:
    """First bare YYYY-MM-DD anywhere in the body"""
    return _first_match(data, [DATE_RE])


def select_date_parser(endpoint: str, content_type: str) -> Callable[[str], Optional[str]]:
    """
    Pick the date parser for a response

    Args:
        endpoint: Requested path
        content_type: Content-Type header of the response

    Returns:
        Parser taking the response body
    """
    if '/ISAPI/' in endpoint:
        return extract_date_from_isapi_xml
    if '.cgi' in endpoint:
        return extract_date_from_cgi
    if 'text/html' in (content_type or '').lower():
        return extract_date_from_html
    return extract_date_generic


# =============================================================================
# AUTHENTICATION STRATEGIES
# =============================================================================

class AuthStrategy:
    """One way of requesting an endpoint"""

    name = 'none'

    def __init__(self, username: Optional[str] = None, password: Optional[str] = None):
        self.username = username
        self.password = password

    def request(self, session, url: str, timeout: float) -> requests.Response:
        return session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=False)


class BasicAuthStrategy(AuthStrategy):
    name = 'basic'

    def request(self, session, url, timeout):
        return session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=False,
                           auth=HTTPBasicAuth(self.username, self.password))


class DigestAuthStrategy(AuthStrategy):
    """
    Digest auth through requests' HTTPDigestAuth

    If the digest client fails, the challenge is requested manually: an
    endpoint that stopped challenging is used as is, otherwise the 401 is
    returned so the chain moves on to the non-standard strategies.
    """

    name = 'digest'

    def request(self, session, url, timeout):
        try:
            return session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=False,
                               auth=HTTPDigestAuth(self.username, self.password))
        except Exception as e:
            logger.debug(f"[DIGEST AUTH] Digest client failed for {url}: {e}")
            return self._manual_challenge(session, url, timeout)

    def _manual_challenge(self, session, url, timeout):
        response = session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=False)
        if response.status_code == 401:
            logger.debug(f"[DIGEST AUTH] Challenge: {response.headers.get('WWW-Authenticate', '')}")
        return response


class QueryCredentialsStrategy(AuthStrategy):
    """Credentials as user/password query parameters (some firmwares accept this)"""

    name = 'query'

    def request(self, session, url, timeout):
        return session.get(url, headers=DEFAULT_HEADERS, timeout=timeout, allow_redirects=False,
                           params={'user': self.username, 'password': self.password})


class HeaderCredentialsStrategy(AuthStrategy):
    """Pre-emptive Basic header sent as an XHR request"""

    name = 'header'

    def request(self, session, url, timeout):
        token = base64.b64encode(f"{self.username}:{self.password}".encode()).decode()
        headers = dict(DEFAULT_HEADERS)
        headers['Authorization'] = f"Basic {token}"
        headers['X-Requested-With'] = 'XMLHttpRequest'
        return session.get(url, headers=headers, timeout=timeout, allow_redirects=False)


def build_auth_chain(username: Optional[str] = None,
                     password: Optional[str] = None) -> List[AuthStrategy]:
    """Ordered auth strategies; without credentials only the plain request"""
    if not (username and password):
        return [AuthStrategy()]

    return [
        AuthStrategy(),
        BasicAuthStrategy(username, password),
        DigestAuthStrategy(username, password),
        QueryCredentialsStrategy(username, password),
        HeaderCredentialsStrategy(username, password),
    ]


# =============================================================================
# EXTRACTOR
# =============================================================================

class DeviceTimeExtractor:
    """Extracts the device date from a camera's web interface"""

    def __init__(self, timeout: float = 10, session: Optional[requests.Session] = None):
        """
        Args:
            timeout: Per-request timeout in seconds
            session: HTTP session to use (a fresh one per extraction if None)
        """
        self.timeout = timeout
        self.session = session

    def extract(self, address: str, username: Optional[str] = None,
                password: Optional[str] = None) -> Optional[str]:
        """
        Read the device date

        Args:
            address: Camera IP address or hostname
            username: Camera username (optional)
            password: Camera password (optional)

        Returns:
            Date as YYYY-MM-DD, or None if no endpoint reported one
        """
        logger.debug(f"[SCRAPE] {address} start (credentials: {'yes' if username and password else 'no'})")

        session = self.session or requests.Session()
        try:
            for attempt in self.build_attempts(session, address, username, password):
                camera_date = attempt()
                if camera_date:
                    logger.info(f"[SCRAPE] {address} -> {camera_date}")
                    return camera_date
        finally:
            if self.session is None:
                session.close()

        logger.info(f"[SCRAPE] {address} -> date not found")
        return None

    def build_attempts(self, session, address: str, username: Optional[str],
                       password: Optional[str]) -> List[Callable[[], Optional[str]]]:
        """Ordered zero-argument attempts, each returning a date or None"""
        attempts = []

        if username and password:
            attempts.extend(
                partial(self._try_isapi_fast_path, session, address, endpoint, username, password)
                for endpoint in ISAPI_FAST_PATH_ENDPOINTS
            )

        attempts.extend(
            partial(self._try_endpoint, session, address, endpoint, username, password)
            for endpoint in SCRAPE_ENDPOINTS
        )
        return attempts

    def fetch(self, session, url: str, username: Optional[str] = None,
              password: Optional[str] = None) -> requests.Response:
        """
        Request a URL, escalating authentication on 401 challenges

        Errors from the plain request propagate; errors from an escalation
        step are logged and the next step is tried.
        """
        response = None

        for strategy in build_auth_chain(username, password):
            if response is not None and response.status_code != 401:
                break

            if response is not None:
                logger.debug(f"[SCRAPE] 401 from {url}, trying {strategy.name} auth")

            try:
                response = strategy.request(session, url, self.timeout)
            except requests.RequestException as e:
                if response is None:
                    raise
                logger.debug(f"[SCRAPE] {strategy.name} auth failed for {url}: {e}")

        return response

    def _try_isapi_fast_path(self, session, address, endpoint, username, password) -> Optional[str]:
        url = f"http://{address}{endpoint}"
        try:
            response = session.get(url, headers=DEFAULT_HEADERS, timeout=self.timeout,
                                   allow_redirects=False, auth=HTTPDigestAuth(username, password))
            logger.debug(f"[ISAPI] {endpoint} -> {response.status_code}")

            if response.status_code == 200:
                camera_date = extract_date_from_isapi_xml(response.text)
                if camera_date:
                    return camera_date
                logger.debug(f"[ISAPI] No date in {endpoint}: {response.text[:500]}")

        except Exception as e:
            logger.debug(f"[ISAPI] Error with {address}{endpoint}: {e}")

        return None

    def _try_endpoint(self, session, address, endpoint, username, password) -> Optional[str]:
        url = f"http://{address}{endpoint}"
        try:
            response = self.fetch(session, url, username, password)
            status = response.status_code
            logger.debug(f"[SCRAPE] {endpoint} -> {status}")

            if 200 <= status < 300:
                content_type = response.headers.get('Content-Type', '')
                parser = select_date_parser(endpoint, content_type)
                camera_date = parser(response.text)
                if camera_date:
                    logger.debug(f"[SCRAPE] Date found in {endpoint} ({parser.__name__})")
                    return camera_date
                logger.debug(f"[SCRAPE] No date in {endpoint}: {response.text[:500]}")
            elif status in STATUS_MESSAGES:
                logger.debug(f"[SCRAPE] {STATUS_MESSAGES[status]}: {endpoint}")

        except Exception as e:
            logger.debug(f"[SCRAPE] Error with {address}{endpoint}: {e}")

        return None
