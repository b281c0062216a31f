import base64
import logging
from dataclasses import dataclass

import requests

from ..config import Config
from ..validators import parse_positive_int, sanitize_key, sanitize_slug

logger = logging.getLogger(__name__)

AUTH_HEADER = "X-SF-Sync-Authorization"
QUERY_USER_PARAM = "sf_sync_user"
QUERY_PASS_PARAM = "sf_sync_pass"

CONNECT_TIMEOUT = 10
PING_TIMEOUT = 15


@dataclass(frozen=True)
class SourceResponse:
    """Raw answer from the source: status code, body text and the URL asked.

    ``url`` never carries credentials, even when the query-string fallback
    produced the response.
    """

    status_code: int
    body: str
    url: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class SourceClient:
    def __init__(self, config: Config):
        self.config = config
        self._session: requests.Session | None = None
        self.api_base = self._get_api_base()

    @property
    def session(self) -> requests.Session:
        """Lazily created session carrying both auth headers."""
        if self._session is None:
            self._session = self._create_session()
        return self._session

    def _get_api_base(self) -> str:
        namespace = self.config.rest_namespace.strip("/")
        return f"{self.config.source_url.rstrip('/')}/wp-json/{namespace}"

    def _basic_auth_value(self) -> str:
        token = f"{self.config.username}:{self.config.app_password}"
        return "Basic " + base64.b64encode(token.encode("utf-8")).decode("ascii")

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.auth = (self.config.username, self.config.app_password)
        # Some hosts strip Authorization before it reaches the application
        session.headers[AUTH_HEADER] = self._basic_auth_value()
        session.verify = not self.config.insecure
        return session

    def document_url(self, content_type: str, identifier: str | int) -> str:
        """
        Build the endpoint URL for one content item.

        A positive numeric identifier addresses the item by id, anything
        else is slug-normalized and addressed by slug.

        Raises:
            ValueError: If the content type or the identifier normalize to
                an empty string.
        """
        post_type = sanitize_key(content_type)
        if not post_type:
            raise ValueError(f"Invalid content type '{content_type}'")

        item_id = parse_positive_int(identifier)
        if item_id:
            return f"{self.api_base}/post-type/{post_type}/{item_id}"

        slug = sanitize_slug(str(identifier))
        if not slug:
            raise ValueError(
                f"Source identifier '{identifier}' is neither an id nor a slug"
            )
        return f"{self.api_base}/post-type/{post_type}/by-slug/{slug}"

    def _get(self, url: str, timeout: int, params: dict | None = None) -> SourceResponse:
        response = self.session.get(
            url,
            params=params,
            timeout=(CONNECT_TIMEOUT, timeout),
        )
        return SourceResponse(
            status_code=response.status_code,
            body=response.text,
            url=url,
        )

    def _get_with_auth_fallback(self, url: str, timeout: int) -> SourceResponse:
        """
        GET with header auth; on 401 retry once with query-string credentials.

        The retry only replaces the first response when it succeeds, so a
        failed retry still reports the original 401.
        """
        response = self._get(url, timeout)
        if response.status_code != 401 or not self.config.query_auth_fallback:
            return response

        logger.info("Source answered 401, retrying with query-string credentials")
        try:
            retry = self._get(
                url,
                timeout,
                params={
                    QUERY_USER_PARAM: self.config.username,
                    QUERY_PASS_PARAM: self.config.app_password,
                },
            )
        except requests.RequestException as exc:
            logger.warning("Query-string auth retry failed: %s", exc)
            return response

        if retry.ok:
            return retry
        logger.debug("Query-string auth retry returned %d", retry.status_code)
        return response

    def fetch_document(self, content_type: str, identifier: str | int) -> SourceResponse:
        """
        Fetch the wire document of one content item.

        Raises:
            ValueError: If the identifier cannot be turned into a URL.
            requests.RequestException: If the source cannot be reached.
        """
        url = self.document_url(content_type, identifier)
        logger.debug("Fetching source document: %s", url)
        return self._get_with_auth_fallback(url, self.config.timeout)

    def ping(self) -> SourceResponse:
        """Call the authenticated ping endpoint of the source."""
        return self._get_with_auth_fallback(f"{self.api_base}/ping", PING_TIMEOUT)

    def check_connection(self) -> tuple[bool, str]:
        """
        Test the configured credentials against the source.

        Returns:
            Tuple of (is_ok, message). A 404 still counts as reachable: the
            API answered, only the route is missing.
        """
        try:
            response = self.ping()
        except requests.RequestException as exc:
            return (False, f"Could not reach source: {exc}")

        if response.status_code == 401:
            return (
                False,
                "Invalid username or application password. If the host strips "
                "auth headers, allow query-string auth on the source.",
            )
        if response.status_code == 404:
            return (True, "Connection OK. (Ping route not found; API is reachable.)")
        if response.ok:
            return (True, "Connection successful.")
        return (False, f"Unexpected response: {response.status_code}")
