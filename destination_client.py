"""
REST client for the cloud destination service.

Handles OAuth2 client-credentials sign-in, the organization (tenant) lookup
used as a liveness check, and the per-folder migration request.
"""

import logging
import time
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger('public_folder_migrator.destination')


class DestinationApiError(Exception):
    """Exception for destination service failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ItemTransferFailure(DestinationApiError):
    """The destination rejected or failed the migration of a single folder."""

    def __init__(self, folder_name: str, message: str, status_code: Optional[int] = None):
        self.folder_name = folder_name
        super().__init__(f"Transfer of '{folder_name}' failed: {message}", status_code)


class DestinationClient:
    """Destination REST API client with token sign-in, retry logic, and rate limiting."""

    DEFAULT_TIMEOUT = 30
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_BACKOFF = 0.5
    DEFAULT_RATE_LIMIT = 0.0
    DEFAULT_SCOPE = 'https://outlook.office365.com/.default'
    DEFAULT_ORGANIZATION_ENDPOINT = '/organization'
    DEFAULT_MIGRATION_ENDPOINT = '/publicfolders/migrations'

    def __init__(
        self,
        base_url: str,
        token_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        access_token: Optional[str] = None,
        scope: str = DEFAULT_SCOPE,
        verify_ssl: bool = True,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_backoff_factor: float = DEFAULT_RETRY_BACKOFF,
        rate_limit: float = DEFAULT_RATE_LIMIT,
        organization_endpoint: str = DEFAULT_ORGANIZATION_ENDPOINT,
        migration_endpoint: str = DEFAULT_MIGRATION_ENDPOINT
    ):
        """
        Initialize destination client. No network I/O happens until open_session().

        Args:
            base_url: Destination API base URL
            token_url: OAuth2 token endpoint for client-credentials sign-in
            client_id: Application (client) ID
            client_secret: Application secret
            access_token: Pre-issued bearer token (skips the token request)
            scope: OAuth2 scope requested with client credentials
            verify_ssl: Whether to verify SSL certificates
            timeout: Request timeout in seconds
            max_retries: Maximum number of retries for failed requests
            retry_backoff_factor: Backoff factor for retries
            rate_limit: Minimum seconds between requests (0 = no limit)
            organization_endpoint: Path of the tenant descriptor
            migration_endpoint: Path accepting folder migration requests
        """
        self.base_url = base_url.rstrip('/')
        self.token_url = token_url
        self.client_id = client_id
        self.client_secret = client_secret
        self.scope = scope
        self.verify_ssl = verify_ssl
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor
        self.rate_limit = rate_limit
        self.organization_endpoint = organization_endpoint
        self.migration_endpoint = migration_endpoint
        self._static_token = access_token
        self._last_request_time = 0.0
        self.session: Optional[requests.Session] = None

    @property
    def is_open(self) -> bool:
        return self.session is not None

    def open_session(self) -> None:
        """
        Sign in and prepare an authenticated HTTP session.

        Raises:
            DestinationApiError: If no token can be obtained
        """
        token = self._static_token or self._request_token()

        session = requests.Session()
        session.headers.update({
            'Authorization': f'Bearer {token}',
            'Accept': 'application/json'
        })

        retry_strategy = Retry(
            total=self.max_retries,
            backoff_factor=self.retry_backoff_factor,
            status_forcelist=[429, 500, 502, 503, 504],
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount('http://', adapter)
        session.mount('https://', adapter)

        self.session = session
        logger.debug(f"Opened destination session for {self.base_url}")

    def _request_token(self) -> str:
        """Obtain an access token with the client-credentials grant."""
        if not (self.token_url and self.client_id and self.client_secret):
            raise DestinationApiError("No access token configured and client credentials are incomplete")

        try:
            response = requests.post(
                self.token_url,
                data={
                    'grant_type': 'client_credentials',
                    'client_id': self.client_id,
                    'client_secret': self.client_secret,
                    'scope': self.scope
                },
                verify=self.verify_ssl,
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            status = e.response.status_code if getattr(e, 'response', None) is not None else None
            raise DestinationApiError(f"Token request failed: {str(e)}", status) from e
        except ValueError as e:
            raise DestinationApiError("Token endpoint returned a non-JSON response") from e

        token = payload.get('access_token')
        if not token:
            raise DestinationApiError(
                f"Token endpoint returned no access_token: {payload.get('error_description', payload.get('error', 'unknown error'))}"
            )
        return token

    def _handle_rate_limit(self) -> None:
        """Enforce rate limiting between requests."""
        if self.rate_limit <= 0:
            return

        time_since_last = time.time() - self._last_request_time
        if time_since_last < self.rate_limit:
            sleep_time = self.rate_limit - time_since_last
            logger.debug(f"Rate limiting: sleeping {sleep_time:.2f}s")
            time.sleep(sleep_time)

        self._last_request_time = time.time()

    def _make_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Make HTTP request with error handling.

        Returns:
            JSON response as dictionary

        Raises:
            DestinationApiError: For transport errors, HTTP errors and non-JSON bodies
        """
        if self.session is None:
            raise DestinationApiError("Destination session is not open")

        self._handle_rate_limit()

        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")

        try:
            response = self.session.request(
                method=method,
                url=url,
                params=params,
                json=json,
                verify=self.verify_ssl,
                timeout=self.timeout
            )
            logger.debug(f"Response status: {response.status_code}")
            response.raise_for_status()

            if response.status_code == 204 or not response.content:
                return {}
            return response.json()

        except requests.RequestException as e:
            status = e.response.status_code if getattr(e, 'response', None) is not None else None
            detail = ""
            if status is not None:
                detail = f" - {e.response.text[:500]}"
            raise DestinationApiError(f"{method} {url} failed: {str(e)}{detail}", status) from e
        except ValueError as e:
            raise DestinationApiError(f"{method} {url} returned a non-JSON response") from e

    def get_organization(self) -> Dict[str, Any]:
        """
        Fetch the tenant/organization descriptor.

        Collection-shaped responses ({"value": [...]}) are unwrapped to their first element.
        """
        data = self._make_request('GET', self.organization_endpoint)
        if isinstance(data.get('value'), list):
            return data['value'][0] if data['value'] else {}
        return data

    def migrate_folder(
        self,
        identity: str,
        name: str,
        parent_path: str,
        mail_enabled: bool,
        batch_label: str
    ) -> Dict[str, Any]:
        """
        Ask the destination to migrate one folder and wait for its result.

        Returns:
            Response body, expected to carry 'status', 'itemsMigrated' and 'error'

        Raises:
            ItemTransferFailure: If the request itself fails
        """
        payload = {
            'batchName': batch_label,
            'sourceIdentity': identity,
            'name': name,
            'parentPath': parent_path,
            'mailEnabled': mail_enabled
        }
        try:
            return self._make_request('POST', self.migration_endpoint, json=payload)
        except DestinationApiError as e:
            raise ItemTransferFailure(name, str(e), e.status_code) from e

    def close(self) -> None:
        """Drop the session. Safe to call when no session is open."""
        if self.session is None:
            return
        try:
            self.session.close()
        finally:
            self.session = None
            logger.debug("Closed destination session")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'DestinationClient':
        """
        Create client from configuration dictionary.

        Args:
            config: Configuration dict with 'destination' section

        Returns:
            Configured DestinationClient instance
        """
        destination_config = config.get('destination', {})
        advanced_config = config.get('advanced', {})

        return cls(
            base_url=destination_config.get('base_url'),
            token_url=destination_config.get('token_url'),
            client_id=destination_config.get('client_id'),
            client_secret=destination_config.get('client_secret'),
            access_token=destination_config.get('access_token'),
            scope=destination_config.get('scope', cls.DEFAULT_SCOPE),
            verify_ssl=destination_config.get('verify_ssl', True),
            timeout=advanced_config.get('request_timeout', cls.DEFAULT_TIMEOUT),
            max_retries=advanced_config.get('max_retries', cls.DEFAULT_MAX_RETRIES),
            retry_backoff_factor=advanced_config.get('retry_backoff_factor', cls.DEFAULT_RETRY_BACKOFF),
            rate_limit=advanced_config.get('rate_limit', cls.DEFAULT_RATE_LIMIT),
            organization_endpoint=destination_config.get(
                'organization_endpoint', cls.DEFAULT_ORGANIZATION_ENDPOINT
            ),
            migration_endpoint=destination_config.get('migration_endpoint', cls.DEFAULT_MIGRATION_ENDPOINT)
        )
