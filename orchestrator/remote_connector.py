"""Session management for the destination service."""

import importlib.util
from typing import Any, Callable, Dict, List, Optional, Sequence

from config_loader import DEFAULT_REQUIRED_MODULES
from destination_client import DestinationApiError, DestinationClient
from logger import RunLog


class PrerequisiteMissing(Exception):
    """A client module the destination session needs is not installed."""

    def __init__(self, missing: Sequence[str]):
        self.missing = list(missing)
        super().__init__(
            f"Required module(s) not available: {', '.join(self.missing)}. "
            f"Install them with: pip install {' '.join(self.missing)}"
        )


class ConnectionFailure(Exception):
    """The destination session could not be opened."""
    pass


class ConnectionUnusable(ConnectionFailure):
    """A session opened but failed the organization liveness check."""
    pass


class RemoteConnector:
    """Opens, verifies and releases the destination session."""

    def __init__(
        self,
        client_factory: Callable[[], DestinationClient],
        run_log: RunLog,
        required_modules: Optional[List[str]] = None,
        module_finder: Callable[[str], Any] = importlib.util.find_spec
    ):
        """
        Args:
            client_factory: Builds the destination client (no I/O)
            run_log: Run log shared by every stage
            required_modules: Modules that must be importable before connecting
            module_finder: Locates a module by name, returning None when absent
        """
        self.client_factory = client_factory
        self.run_log = run_log
        self.required_modules = list(
            DEFAULT_REQUIRED_MODULES if required_modules is None else required_modules
        )
        self.module_finder = module_finder
        self.organization: Dict[str, Any] = {}
        self._client: Optional[DestinationClient] = None

    @property
    def client(self) -> DestinationClient:
        """The connected destination client."""
        if self._client is None or not self._client.is_open:
            raise ConnectionFailure("Destination is not connected")
        return self._client

    def connect(self) -> Dict[str, Any]:
        """
        Verify prerequisites, open a session and check it is usable.

        Returns:
            The organization descriptor reported by the destination

        Raises:
            PrerequisiteMissing: If a required module is absent
            ConnectionFailure: If the session cannot be opened
            ConnectionUnusable: If the session fails the liveness check
        """
        self.run_log.info("Checking destination prerequisites")
        missing = [name for name in self.required_modules if not self._module_available(name)]
        if missing:
            raise PrerequisiteMissing(missing)

        self.run_log.info("Connecting to destination service")
        self._client = self.client_factory()
        try:
            self._client.open_session()
        except DestinationApiError as e:
            raise ConnectionFailure(f"Could not open destination session: {str(e)}") from e

        try:
            organization = self._client.get_organization()
        except DestinationApiError as e:
            raise ConnectionUnusable(
                f"Destination session opened but the organization lookup failed: {str(e)}"
            ) from e

        if not isinstance(organization, dict):
            raise ConnectionUnusable(
                f"Destination returned an unexpected organization payload: {type(organization).__name__}"
            )

        label = organization.get('displayName') or organization.get('DisplayName') or \
            organization.get('name') or organization.get('id')
        if not label:
            raise ConnectionUnusable("Destination session opened but returned no organization details")

        self.organization = organization
        self.run_log.success(f"Connected to destination organization '{label}'")
        return organization

    def disconnect(self) -> None:
        """Release the session. Never raises."""
        if self._client is None:
            self.run_log.info("No destination session to close")
            return

        try:
            self._client.close()
            self.run_log.info("Disconnected from destination service")
        except Exception as e:
            self.run_log.warning(f"Error while disconnecting from destination: {str(e)}")
        finally:
            self._client = None

    def _module_available(self, name: str) -> bool:
        try:
            return self.module_finder(name) is not None
        except (ImportError, ValueError):
            return False


__all__ = ['RemoteConnector', 'PrerequisiteMissing', 'ConnectionFailure', 'ConnectionUnusable']
