from typing import Optional
import logging
import requests

from .error_utils import ApiError, TransportError
from .session import SessionHolder

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiClient:
    """
    Thin wrapper over a requests.Session for the parking REST API.

    Attaches "Authorization: <type> <token>" to every request aimed at <base_url>/api while a session is held.
    Requests to any other URL go out untouched.

    May raise the following errors from request():
        TransportError if the API could not be reached
        ApiError if the API answered with a status code of 300 or above
    """

    def __init__(self, base_url: str, session_holder: SessionHolder, http: requests.Session = None, timeout: float = DEFAULT_TIMEOUT):
        self._base_url = base_url.rstrip("/")
        self._session_holder = session_holder
        self._http = http or requests.Session()
        self._timeout = timeout

    @property
    def api_root(self) -> str:
        return f"{self._base_url}/api"

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _is_api_url(self, url: str) -> bool:
        return url == self.api_root or url.startswith(self.api_root + "/")

    def _headers_for(self, url: str) -> dict:
        headers = {"Accept": "application/json"}
        if not self._is_api_url(url):
            return headers
        session = self._session_holder.current
        if session and session.token:
            logger.debug(f"Attaching Authorization header to request {url}")
            headers["Authorization"] = session.authorization_header
        elif "/api/auth/" not in url:
            logger.warning(f"No token present while sending request to API {url}")
        return headers

    def request(self, method: str, path: str, params: dict = None, json: dict = None):
        """
        Send a request and return the decoded JSON body, or None for an empty body.
        """
        url = self.url_for(path)
        try:
            response = self._http.request(method, url, params=params, json=json, headers=self._headers_for(url), timeout=self._timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TransportError(f"Could not reach the parking service: {e}", url=url) from e

        logger.info(f"HTTP Response code: {response.status_code} for {method} {url}")
        if response.status_code >= 300:
            raise ApiError(response.status_code, self._error_message(response), url=url)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            # Some command endpoints answer with a plain text confirmation
            return response.text

    @staticmethod
    def _error_message(response) -> Optional[str]:
        """
        Extract the backend's message from an error body, e.g. {"message": "Spot already reserved"}.
        """
        try:
            body = response.json()
        except ValueError:
            return None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error")
            if message:
                return str(message)
        return None

    def get(self, path: str, params: dict = None):
        return self.request("GET", path, params=params)

    def post(self, path: str, json: dict = None):
        return self.request("POST", path, json=json)

    def put(self, path: str, json: dict = None):
        return self.request("PUT", path, json=json)

    def delete(self, path: str):
        return self.request("DELETE", path)


def error_message(error: Exception, fallback: str) -> str:
    """
    User facing text for a failed call: the server's message when it sent one, otherwise the fallback.
    """
    if isinstance(error, ApiError) and error.server_message:
        return error.server_message
    return fallback
