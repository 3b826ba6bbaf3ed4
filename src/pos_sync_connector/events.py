"""
Suscripción explícita a eventos de las entidades (Order, Business, Register).

Las entidades emiten eventos con nombre y los consumidores registran sus
callbacks con ``on()``. Los callbacks se ejecutan de forma síncrona, en el
orden en que fueron registrados.
"""
import logging
from typing import Callable, Dict, List

from pydantic import PrivateAttr

from .base import ApiModel

logger = logging.getLogger(__name__)


class ObservableModel(ApiModel):
    """Modelo Pydantic que puede emitir eventos a sus suscriptores"""

    _listeners: Dict[str, List[Callable]] = PrivateAttr(default_factory=dict)

    def on(self, event: str, callback: Callable) -> None:
        """Registra ``callback`` para el evento ``event``"""
        self._listeners.setdefault(event, []).append(callback)

    def off(self, event: str, callback: Callable) -> None:
        """Elimina un callback registrado previamente (si existe)"""
        callbacks = self._listeners.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def has_listener(self, event: str, callback: Callable) -> bool:
        return callback in self._listeners.get(event, [])

    def emit(self, event: str, *args) -> None:
        """Ejecuta todos los callbacks registrados para ``event``"""
        callbacks = list(self._listeners.get(event, []))
        if callbacks:
            logger.debug(f"Evento '{event}' emitido por {type(self).__name__} ({len(callbacks)} suscriptores)")
        for callback in callbacks:
            callback(*args)
