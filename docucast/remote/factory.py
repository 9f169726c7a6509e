"""
Remote Client Factory
=====================
Factory pattern for creating remote conversion clients.
Enables runtime selection of the conversion service.
"""

from typing import TYPE_CHECKING, Callable

from docucast.remote.base import RemoteConversionClient
from docucast.remote.playnote import PlayNoteClient

if TYPE_CHECKING:
    from docucast.app.config import AppConfig


class ClientFactory:
    """
    Factory for creating remote client instances.

    Usage:
        client = ClientFactory.create("playnote", config)

        # Plug in another service
        ClientFactory.register("fake", lambda config: FakeClient())
    """

    _builders: dict[str, Callable[["AppConfig"], RemoteConversionClient]] = {
        "playnote": PlayNoteClient.from_config,
    }

    @classmethod
    def create(cls, name: str, config: "AppConfig") -> RemoteConversionClient:
        """
        Create a client instance.

        Raises:
            ValueError: If `name` is not registered
        """
        key = name.lower()
        if key not in cls._builders:
            available = ", ".join(cls.available_clients())
            raise ValueError(
                f"Unknown conversion client: '{name}'. Available: {available}"
            )
        return cls._builders[key](config)

    @classmethod
    def register(cls, name: str, builder: Callable[["AppConfig"], RemoteConversionClient]) -> None:
        cls._builders[name.lower()] = builder

    @classmethod
    def available_clients(cls) -> list[str]:
        return sorted(cls._builders)
