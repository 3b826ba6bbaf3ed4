"""
Transporte HTTP hacia el API de sincronización.

El transporte sólo sabe enviar un POST con un cuerpo JSON y retornar el JSON
decodificado de la respuesta. La interpretación de la respuesta (status,
token, versión de datos...) es responsabilidad de ``SyncApiClient``.
"""
import asyncio
import logging
from typing import Any, Optional

import requests

from .config import settings
from .errors import InvalidResponse, NetworkError, ServerError

logger = logging.getLogger(__name__)


class Transport:
    """Interfaz del transporte: ``await post(path, body)`` -> dict decodificado"""

    async def post(self, path: Optional[str], body: Optional[dict] = None) -> Any:
        raise NotImplementedError


class RequestsTransport(Transport):
    """
    Transporte basado en ``requests``. Cada petición se ejecuta en un thread
    (``asyncio.to_thread``) para no bloquear el event loop.

    No hace reintentos: los errores se propagan como ServerError,
    NetworkError o InvalidResponse.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        """Inicializa el transporte"""
        self.base_url = (base_url or settings.API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.API_TIMEOUT
        self.session = requests.Session()
        self.session.headers.update({
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        })
        self.total_requests = 0

    def build_url(self, path: Optional[str] = None) -> str:
        """Retorna la URL del API para ``path`` (o la URL base si no hay path)"""
        return f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

    async def post(self, path: Optional[str], body: Optional[dict] = None) -> Any:
        return await asyncio.to_thread(self._post, path, body)

    def _post(self, path: Optional[str], body: Optional[dict]) -> Any:
        url = self.build_url(path)
        logger.debug(f"POST {url}")
        self.total_requests += 1

        try:
            response = self.session.post(url, json=body or {}, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            error_msg = f"Error de red al contactar {url}: {e}"
            logger.error(error_msg)
            raise NetworkError(error_msg)

        if not 200 <= response.status_code < 300:
            error_msg = f"Status de respuesta recibido {response.status_code} {response.reason}"
            logger.error(f"{error_msg} ({url})")
            raise ServerError(error_msg)

        try:
            return response.json()
        except ValueError:
            logger.error(f"Respuesta con JSON inválido desde {url}: {response.text[:200]}")
            raise InvalidResponse("La respuesta contiene JSON inválido.")

    def close(self) -> None:
        self.session.close()

    def get_stats(self) -> dict:
        """
        Obtiene estadísticas de uso del transporte.

        Returns:
            dict con estadísticas
        """
        return {
            "base_url": self.base_url,
            "total_requests": self.total_requests
        }
