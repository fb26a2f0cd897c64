# src/api/validation.py — v1
"""Configuration-time checks and drop-down data for the job form.

One ConfigValidator is shared by every form request of a host. The server
keeps only the newest session of a user valid, so all operations that log in
or use the session are serialized on one asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from cxscan.api.models import ListOption, ValidationMessage
from cxscan.client.base_client import BaseScanClient
from cxscan.config.settings import Settings
from cxscan.core.errors import AuthError, CxScanError

logger = logging.getLogger(__name__)

ILLEGAL_PROJECT_NAME = "Illegal project name"
PRESETS_PLACEHOLDER = "Provide server credentials to see presets list"
ENCODINGS_PLACEHOLDER = "Provide server credentials to see source encodings list"


class ConfigValidator:
    """Validates form fields against the server through one shared client."""

    def __init__(
        self,
        settings: Settings | None = None,
        client_factory: Callable[[str], BaseScanClient] | None = None,
    ) -> None:
        self._settings = settings or Settings()
        self._client_factory = client_factory or self._default_client_factory
        self._client: BaseScanClient | None = None
        self._lock = asyncio.Lock()

    def _default_client_factory(self, server_url: str) -> BaseScanClient:
        from cxscan.client.http_client import HttpScanClient

        return HttpScanClient(server_url, settings=self._settings)

    @property
    def has_client(self) -> bool:
        return self._client is not None

    # --- Global credentials ---

    def credentials_description(self) -> str:
        """Text shown next to the "use default server credentials" option."""
        if not self._settings.has_default_credentials:
            return "not set"
        return (
            f"Server URL: {self._settings.server_url} "
            f"username: {self._settings.server_username}"
        )

    async def check_server_url(self, server_url: str) -> ValidationMessage:
        async with self._lock:
            await self._replace_client(None)
            try:
                client = self._client_factory(server_url)
            except ValueError as exc:
                return ValidationMessage.error(str(exc))
            try:
                await client.ping()
            except CxScanError as exc:
                await client.aclose()
                return ValidationMessage.error(str(exc))
            self._client = client
            return ValidationMessage.ok("Server Validated Successfully")

    async def check_password(
        self, server_url: str, username: str, password: str,
    ) -> ValidationMessage:
        async with self._lock:
            if self._client is None:
                try:
                    self._client = self._client_factory(server_url)
                except ValueError:
                    return ValidationMessage.warning("Server URL not set")
            try:
                await self._client.login(username, password)
            except AuthError as exc:
                return ValidationMessage.error(str(exc))
            return ValidationMessage.ok("Login Successful")

    # --- Drop-down data ---

    async def fill_project_names(
        self,
        use_own_server_credentials: bool = False,
        server_url: str = "",
        username: str = "",
        password: str = "",
    ) -> list[str]:
        async with self._lock:
            client = await self._prepare_logged_in_client(
                use_own_server_credentials, server_url, username, password,
            )
            if client is None:
                logger.debug("Projects list: empty")
                return []
            names = [project.name for project in await client.list_projects()]
            logger.debug("Projects list: %d", len(names))
            return names

    async def fill_presets(
        self,
        use_own_server_credentials: bool = False,
        server_url: str = "",
        username: str = "",
        password: str = "",
    ) -> list[ListOption]:
        async with self._lock:
            client = await self._prepare_logged_in_client(
                use_own_server_credentials, server_url, username, password,
            )
            presets = await client.list_presets() if client is not None else []
            logger.debug("Presets list: %d", len(presets))
            if not presets:
                return [ListOption(name=PRESETS_PLACEHOLDER, value=PRESETS_PLACEHOLDER)]
            return [ListOption(name=p.name, value=str(p.id)) for p in presets]

    async def fill_source_encodings(
        self,
        use_own_server_credentials: bool = False,
        server_url: str = "",
        username: str = "",
        password: str = "",
    ) -> list[ListOption]:
        async with self._lock:
            client = await self._prepare_logged_in_client(
                use_own_server_credentials, server_url, username, password,
            )
            encodings = await client.list_source_encodings() if client is not None else []
            logger.debug("Source encodings list: %d", len(encodings))
            if not encodings:
                return [ListOption(name=ENCODINGS_PLACEHOLDER, value=ENCODINGS_PLACEHOLDER)]
            return [ListOption(name=e.name, value=str(e.id)) for e in encodings]

    # --- Field checks ---

    async def check_project_name(self, project_name: str) -> ValidationMessage:
        async with self._lock:
            if self._client is None or not self._client.is_logged_in():
                return ValidationMessage.warning(
                    "Can't validate project name without server credentials"
                )
            check = await self._client.validate_project_name(project_name)

        if check.valid:
            return ValidationMessage.ok("Project Name Validated Successfully")
        if check.message.strip().lower() == ILLEGAL_PROJECT_NAME.lower():
            return ValidationMessage.error(ILLEGAL_PROJECT_NAME)
        logger.warning("Couldn't validate project name with server: %s", check.message)
        return ValidationMessage.warning("Can't reach server to validate project name")

    @staticmethod
    def check_high_threshold(value: int) -> ValidationMessage:
        if value >= 0:
            return ValidationMessage.ok()
        return ValidationMessage.error("Number must be non-negative")

    # --- Plumbing ---

    async def _prepare_logged_in_client(
        self,
        use_own_server_credentials: bool,
        server_url: str,
        username: str,
        password: str,
    ) -> BaseScanClient | None:
        """Shared client logged in with the selected credentials, or None.

        Caller must hold the lock.
        """
        if not use_own_server_credentials:
            server_url = self._settings.server_url
            username = self._settings.server_username
            password = self._settings.server_password
        try:
            if self._client is None:
                self._client = self._client_factory(server_url)
            if not self._client.is_logged_in():
                await self._client.login(username, password)
        except (ValueError, AuthError) as exc:
            logger.debug("Server session unavailable: %s", exc)
            return None
        return self._client

    async def _replace_client(self, client: BaseScanClient | None) -> None:
        previous, self._client = self._client, client
        if previous is not None:
            await previous.aclose()

    async def aclose(self) -> None:
        async with self._lock:
            await self._replace_client(None)
