from abc import ABC, abstractmethod
from typing import Any

import httpx

from shared.helper.HelperConfig import HelperConfig
from shared.models.config import EnvConfig


class ClientInterface(ABC):
    """Base for every remote model backend (embedding, chat).

    Engine settings are read from `<TYPE>_<ENGINE>_<KEY>` environment variables
    (e.g. EMBED_OPENAI_API_KEY) and validated on construction. The underlying
    httpx.AsyncClient only exists between boot() and close().
    """

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = helper_config.get_number_val(f"{self.get_client_type().upper()}_TIMEOUT", default=30.0)

        self._client: httpx.AsyncClient | None = None
        self.validate_full_configuration()

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_full_configuration(self) -> None:
        """
        Reads every key returned by _get_required_config() once.

        Raises:
            ValueError: If a key without default is unset or a value cannot be parsed.
        """
        for config in self._get_required_config():
            self.get_config_val(raw_key=config.env_key, default=config.default, val_type=config.val_type)

    def is_booted(self) -> bool:
        return self._client is not None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """Lowercase client type, e.g. "embed" or "llm"."""
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        pass

    def get_engine_name(self) -> str:
        """Lowercase engine name, e.g. "openai"."""
        return self._get_engine_name().lower()

    @abstractmethod
    def _get_engine_name(self) -> str:
        """Display name of the engine, e.g. "OpenAI"."""
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_required_config(self) -> list[EnvConfig]:
        """
        Returns:
            list[EnvConfig]: Engine keys (without the TYPE_ENGINE prefix) checked at construction.
        """
        pass

    def _get_config_key_name(self, raw_key: str) -> str:
        return f"{self.get_client_type().upper()}_{self.get_engine_name().upper()}_{raw_key.upper()}"

    def get_config_val(self, raw_key: str, default: Any = None, val_type: str = "string") -> Any:
        """
        Reads an engine-scoped setting, e.g. raw_key "API_KEY" on the OpenAI
        embed client reads EMBED_OPENAI_API_KEY.

        Args:
            raw_key (str): Key without the TYPE_ENGINE prefix.
            default (Any): Value used when the variable is unset; None makes it required.
            val_type (str): "string", "number", "bool" or "list".
        """
        key = self._get_config_key_name(raw_key)
        readers = {
            "string": self._helper_config.get_string_val,
            "number": self._helper_config.get_number_val,
            "bool": self._helper_config.get_bool_val,
            "list": self._helper_config.get_list_val,
        }
        if val_type not in readers:
            raise ValueError(f"Unsupported config value type '{val_type}' for '{key}'.")
        return readers[val_type](key, default=default)

    ################ AUTH ##################
    @abstractmethod
    def _get_auth_header(self) -> dict:
        """Headers authenticating against the backend; empty when no key is configured."""
        pass

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_base_url(self) -> str:
        """Backend root, e.g. "https://api.openai.com"."""
        pass

    @abstractmethod
    def _get_endpoint_healthcheck(self) -> str:
        """Cheap GET endpoint proving the backend is reachable, e.g. "/v1/models"."""
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_healthcheck(self) -> httpx.Response:
        """GET the healthcheck endpoint.

        Raises:
            Exception: If the backend answers with a status >= 300.
        """
        return await self.do_request(method="GET", endpoint=self._get_endpoint_healthcheck(), raise_on_error=True)

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        """Open the HTTP client.

        Args:
            transport (httpx.AsyncBaseTransport | None): Replaces the network
                transport, e.g. with an httpx.MockTransport.
        """
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=transport)
        self.logging.info(
            "%s client '%s' ready at %r",
            self.get_client_type().upper(),
            self.get_engine_name(),
            self._get_base_url(),
        )

    async def close(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def do_request(
        self,
        method: str = "GET",
        endpoint: str = "",
        json: dict | None = None,
        raise_on_error: bool = False,
    ) -> httpx.Response:
        """Send one request to `<base url><endpoint>` with the auth headers.

        Args:
            method (str): HTTP method.
            endpoint (str): Path below the base URL; leading slash optional.
            json (dict | None): JSON body.
            raise_on_error (bool): Raise when the status is >= 300.

        Returns:
            httpx.Response: The raw response.

        Raises:
            Exception: If boot() was not called, or raise_on_error is set and the
                request failed.
            httpx.HTTPError: On transport failures (refused connection, timeout).
        """
        if self._client is None:
            raise Exception("HTTP client not initialised. Call boot() before making requests.")

        endpoint = endpoint.strip().lstrip("/")
        url = f"{self._get_base_url().rstrip('/')}/{endpoint}" if endpoint else self._get_base_url()

        response = await self._client.request(method, url, headers=self._get_auth_header(), json=json)

        if raise_on_error and response.status_code >= 300:
            self.logging.error("Request to %s failed with status %d: %s", url, response.status_code, response.text[:300])
            raise Exception(f"Request to {url} failed with status {response.status_code}")

        return response
