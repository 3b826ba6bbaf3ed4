"""
Estado de autenticación del dispositivo frente al API.
"""
import logging
from typing import TYPE_CHECKING, Optional

from .config import settings

if TYPE_CHECKING:
    from .api_client import SyncApiClient

logger = logging.getLogger(__name__)


class Auth:
    """
    Autenticación del dispositivo a través de un ``SyncApiClient``.

    Esta clase es una fachada: ``authenticate()`` delega la vinculación al
    cliente, y es el cliente quien marca esta instancia como autenticada o
    no al procesar cada respuesta.
    """

    def __init__(self, client: Optional["SyncApiClient"] = None, device_uuid: Optional[str] = None):
        self.authenticated = False
        self.device_uuid = device_uuid if device_uuid is not None else settings.DEVICE_UUID
        self.client = None
        if client is not None:
            self.attach(client)

    def attach(self, client: "SyncApiClient") -> None:
        """Asocia esta instancia al cliente (y el cliente a esta instancia)"""
        self.client = client
        client.auth = self

    async def authenticate(self, code: str) -> None:
        """
        Vincula el dispositivo con el código recibido. Invalida primero la
        autenticación actual.

        Raises:
            ApiError: si la vinculación falla
        """
        if self.client is None:
            raise RuntimeError("Auth no está asociado a un SyncApiClient")

        self.invalidate()
        await self.client.link_device(code, self.device_uuid)

    def mark_authenticated(self) -> None:
        if not self.authenticated:
            logger.info("Dispositivo autenticado con el API")
        self.authenticated = True

    def invalidate(self) -> None:
        """Marca el dispositivo como no autenticado"""
        if self.authenticated:
            logger.warning("Autenticación con el API invalidada")
        self.authenticated = False
