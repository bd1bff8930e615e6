"""CLI context: target settings and the lazily opened client."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from python.ps4dbg import PS4Debug, TransportConfig
from python.ps4dbg.constants import DEFAULT_PORT

LOGGER = logging.getLogger("ps4dbg_cli.context")

ClientFactory = Callable[[TransportConfig], PS4Debug]


@dataclass
class DebuggerContext:
    """Holds shared CLI state."""

    host: str = "127.0.0.1"
    port: int = DEFAULT_PORT
    timeout: Optional[float] = 30.0
    json_output: bool = False
    aliases: Dict[str, str] = field(default_factory=dict)
    client_factory: ClientFactory = field(default=PS4Debug, repr=False)
    _client: Optional[PS4Debug] = field(default=None, init=False, repr=False)

    def transport_config(self) -> TransportConfig:
        return TransportConfig(host=self.host, port=self.port, read_timeout=self.timeout)

    def ensure_client(self) -> PS4Debug:
        """Return a connected client, connecting on first use or after a drop."""
        client = self._client
        if client is not None and client.connected:
            return client
        if client is None:
            client = self.client_factory(self.transport_config())
            self._client = client
        LOGGER.debug("connecting to %s:%s", self.host, self.port)
        client.connect(self.host, self.port)
        return client

    @property
    def client(self) -> Optional[PS4Debug]:
        return self._client

    @property
    def connected(self) -> bool:
        return self._client is not None and self._client.connected

    def disconnect(self) -> None:
        client = self._client
        if client is None:
            return
        client.disconnect()
        self._client = None

    def resolve_alias(self, name: str) -> str:
        return self.aliases.get(name, name)
