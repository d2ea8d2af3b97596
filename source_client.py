"""REST client for the on-premises public folder service (migration source)."""

import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import urljoin

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('public_folder_migrator.source')


class SourceApiError(Exception):
    """Base exception for source service failures."""
    pass


class SourceEnumerationFailure(SourceApiError):
    """The folder hierarchy could not be enumerated at all."""
    pass


class StatisticsFetchFailure(SourceApiError):
    """Usage statistics for a single folder could not be retrieved."""

    def __init__(self, identity: str, message: str):
        self.identity = identity
        super().__init__(f"Statistics unavailable for '{identity}': {message}")


class SourceClient:
    """Public folder REST client with authentication, retry logic, and rate limiting."""

    DEFAULT_FOLDERS_ENDPOINT = '/api/publicfolders'
    DEFAULT_STATISTICS_ENDPOINT = '/api/publicfolders/statistics'

    def __init__(
        self,
        base_url: str,
        auth_type: str = 'basic',
        username: Optional[str] = None,
        password: Optional[str] = None,
        api_token: Optional[str] = None,
        verify_ssl: bool = True,
        timeout: int = 30,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        rate_limit: float = 0.0,
        folders_endpoint: str = DEFAULT_FOLDERS_ENDPOINT,
        statistics_endpoint: str = DEFAULT_STATISTICS_ENDPOINT,
        page_size: int = 500
    ):
        """
        Initialize source client with authentication and retry configuration.

        Args:
            base_url: Source service base URL (e.g., "https://mail.example.com")
            auth_type: "basic" or "bearer" authentication
            username: Username for basic auth
            password: Password for basic auth
            api_token: Token for bearer auth
            verify_ssl: Whether to verify SSL certificates
            timeout: HTTP request timeout in seconds
            max_retries: Maximum retry attempts for transient errors
            retry_backoff_factor: Exponential backoff factor
            rate_limit: Minimum seconds between requests (0.0 = no rate limiting)
            folders_endpoint: Path listing the folder hierarchy
            statistics_endpoint: Path returning per-folder statistics
            page_size: Folders requested per page
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.rate_limit = rate_limit
        self.folders_endpoint = folders_endpoint
        self.statistics_endpoint = statistics_endpoint
        self.page_size = page_size
        self.last_request_time = 0.0

        self.session = requests.Session()

        if auth_type == 'basic':
            if not username or not password:
                raise ValueError("Basic auth requires username and password")
            self.session.auth = (username, password)
        elif auth_type == 'bearer':
            if not api_token:
                raise ValueError("Bearer auth requires api_token")
            self.session.headers['Authorization'] = f'Bearer {api_token}'
        else:
            raise ValueError(f"Unsupported auth_type: {auth_type}")

        self.session.headers['Accept'] = 'application/json'

        self.session.verify = verify_ssl
        if not verify_ssl:
            logger.warning("SSL verification disabled for source service")
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "OPTIONS"]
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        logger.debug(f"Source client configured for {self.base_url} with {auth_type} auth, "
                     f"timeout={timeout}s, max_retries={max_retries}")

    def _enforce_rate_limit(self) -> None:
        """Enforce rate limiting if configured."""
        if self.rate_limit <= 0:
            return

        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.rate_limit:
            sleep_time = self.rate_limit - time_since_last
            logger.debug(f"Rate limiting: sleeping for {sleep_time:.2f}s")
            time.sleep(sleep_time)

    def _get_json(self, endpoint: str, full_url: Optional[str] = None, **kwargs) -> Any:
        """
        GET a JSON document from the source service.

        Raises:
            requests.exceptions.RequestException: For transport and HTTP errors
            ValueError: If the body is not JSON
        """
        self._enforce_rate_limit()

        url = full_url if full_url else urljoin(self.base_url + '/', endpoint.lstrip('/'))
        start_time = time.time()
        logger.debug(f"API Request: GET {url}")

        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
            logger.debug(f"API Response: {response.status_code} {url} ({time.time() - start_time:.3f}s)")
            response.raise_for_status()
            return response.json()
        finally:
            self.last_request_time = time.time()

    def list_folders(self, root_path: str = '\\') -> List[Dict[str, Any]]:
        """
        Enumerate the full recursive folder hierarchy below root_path.

        Follows `_links.next` / `nextLink` continuation links until exhausted.

        Returns:
            List of raw folder dictionaries, in service order

        Raises:
            SourceEnumerationFailure: If any page of the listing cannot be read
        """
        folders: List[Dict[str, Any]] = []
        params: Optional[Dict[str, Any]] = {
            'identity': root_path,
            'recurse': 'true',
            'limit': self.page_size
        }
        next_url: Optional[str] = None

        try:
            while True:
                data = self._get_json(self.folders_endpoint, full_url=next_url, params=params)
                page = data.get('results', data.get('value', [])) if isinstance(data, dict) else data
                if not isinstance(page, list):
                    raise SourceEnumerationFailure(
                        f"Unexpected folder listing payload: {type(page).__name__}"
                    )
                folders.extend(page)

                next_url = self._next_link(data)
                if not next_url:
                    break
                # Continuation links already carry the query
                params = None
                logger.debug(f"Fetched {len(folders)} folders so far...")
        except (requests.exceptions.RequestException, ValueError) as e:
            raise SourceEnumerationFailure(f"Folder enumeration failed: {str(e)}") from e

        logger.debug(f"Fetched {len(folders)} total folders")
        return folders

    def get_folder_statistics(self, identity: str) -> Dict[str, Any]:
        """
        Fetch usage statistics (item count, size, last modification) for one folder.

        Raises:
            StatisticsFetchFailure: If the statistics request fails
        """
        try:
            data = self._get_json(self.statistics_endpoint, params={'identity': identity})
        except (requests.exceptions.RequestException, ValueError) as e:
            raise StatisticsFetchFailure(identity, str(e)) from e

        if isinstance(data, list):
            data = data[0] if data else None
        if not isinstance(data, dict):
            raise StatisticsFetchFailure(identity, "empty statistics payload")
        return data

    def close(self) -> None:
        """Release pooled connections."""
        self.session.close()

    def _next_link(self, data: Any) -> Optional[str]:
        """Extract a continuation URL from a listing page, if any."""
        if not isinstance(data, dict):
            return None
        next_link = data.get('_links', {}).get('next') or data.get('nextLink') or data.get('@odata.nextLink')
        if not next_link:
            return None
        return urljoin(self.base_url + '/', next_link)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'SourceClient':
        """
        Initialize source client from configuration dictionary.

        Args:
            config: Configuration dictionary with source and advanced settings

        Returns:
            SourceClient instance
        """
        source_config = config.get('source', {})
        advanced_config = config.get('advanced', {})

        return cls(
            base_url=source_config.get('base_url'),
            auth_type=source_config.get('auth_type', 'basic'),
            username=source_config.get('username'),
            password=source_config.get('password'),
            api_token=source_config.get('api_token'),
            verify_ssl=source_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout', 30),
            max_retries=advanced_config.get('max_retries', 3),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', 2.0),
            rate_limit=advanced_config.get('rate_limit', 0.0),
            folders_endpoint=source_config.get('folders_endpoint', cls.DEFAULT_FOLDERS_ENDPOINT),
            statistics_endpoint=source_config.get('statistics_endpoint', cls.DEFAULT_STATISTICS_ENDPOINT),
            page_size=source_config.get('page_size', 500)
        )
