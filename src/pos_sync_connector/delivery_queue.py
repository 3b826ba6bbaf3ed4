"""
Cola de envío confiable (reintenta hasta lograrlo).

``write(payload)`` agrega el payload a una cola FIFO interna. La cola completa
se entrega al sink como un solo lote; si el envío tiene éxito, los elementos
enviados se eliminan de la cola y se vuelve a intentar con lo que se haya
agregado mientras tanto. Si falla, se reintenta después de una espera fija,
indefinidamente.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional

from .config import settings

logger = logging.getLogger(__name__)

Sink = Callable[[List[Any]], Awaitable[Any]]


class ReliableDeliveryQueue:
    """
    Cola de envío con reintentos ilimitados.

    Sólo hay un intento de envío en curso a la vez. Las escrituras que
    llegan durante un intento se toman en el siguiente ciclo del mismo
    intento.
    """

    def __init__(self, sink: Sink, retry_delay: Optional[float] = None):
        """
        Args:
            sink: corrutina que recibe la lista de payloads a enviar; debe
                lanzar una excepción si el envío falla
            retry_delay: espera en segundos antes de reintentar
                (default: settings.RETRY_DELAY_SECONDS)
        """
        self.sink = sink
        self.retry_delay = settings.RETRY_DELAY_SECONDS if retry_delay is None else retry_delay
        self.queue: List[Any] = []
        self.current_try: Optional[asyncio.Task] = None
        self.total_attempts = 0
        self.total_failures = 0
        self.total_delivered = 0

    def write(self, payload: Any) -> asyncio.Task:
        """
        Agrega ``payload`` a la cola y asegura que haya un intento en curso.

        Returns:
            El intento en curso (``asyncio.Task``). Termina cuando la cola
            completa fue enviada sin error, aunque para ello haya tenido que
            esperar reintentos.
        """
        self.add_to_queue(payload)
        return self.data_added_to_queue()

    def add_to_queue(self, payload: Any) -> None:
        self.queue.append(payload)

    def remove_from_queue(self, payloads: List[Any]) -> None:
        """Elimina de la cola los payloads indicados (por identidad, no por valor)"""
        sent_ids = {id(payload) for payload in payloads}
        self.queue = [payload for payload in self.queue if id(payload) not in sent_ids]

    def get_current_queue(self) -> List[Any]:
        """Retorna una copia de la cola tal como está ahora"""
        return list(self.queue)

    def data_added_to_queue(self) -> asyncio.Task:
        """
        Si no hay un intento en curso, inicia uno. Retorna el intento en
        curso.
        """
        if self.current_try is None:
            self.current_try = asyncio.ensure_future(self._run())
        return self.current_try

    async def _run(self) -> None:
        try:
            await self.try_write()
        finally:
            self.current_try = None

    async def try_write(self) -> None:
        """
        Envía la cola al sink hasta que quede vacía, esperando
        ``retry_delay`` segundos después de cada fallo.
        """
        while True:
            current_queue = self.get_current_queue()

            if not current_queue:
                return

            self.total_attempts += 1
            logger.debug(f"Enviando lote de {len(current_queue)} elementos (intento {self.total_attempts})")

            try:
                await self.sink(current_queue)
            except Exception as e:
                self.total_failures += 1
                logger.warning(
                    f"Fallo al enviar lote de {len(current_queue)} elementos: {e}. "
                    f"Reintentando en {self.get_next_timeout()}s..."
                )
                await asyncio.sleep(self.get_next_timeout())
                continue

            self.remove_from_queue(current_queue)
            self.total_delivered += len(current_queue)
            logger.info(f"Lote de {len(current_queue)} elementos enviado. Pendientes: {len(self.queue)}")

    def get_next_timeout(self) -> float:
        """Espera (en segundos) antes del próximo reintento"""
        return self.retry_delay

    async def flush(self) -> None:
        """
        Espera a que la cola quede vacía. Si hay elementos pendientes y no
        hay un intento en curso, inicia uno.
        """
        if self.queue and self.current_try is None:
            self.data_added_to_queue()
        if self.current_try is not None:
            await asyncio.shield(self.current_try)

    @property
    def pending(self) -> int:
        return len(self.queue)

    @property
    def is_idle(self) -> bool:
        return self.current_try is None

    def get_stats(self) -> dict:
        """
        Obtiene estadísticas de la cola.

        Returns:
            dict con estadísticas
        """
        return {
            "pending": self.pending,
            "in_flight": not self.is_idle,
            "total_attempts": self.total_attempts,
            "total_failures": self.total_failures,
            "total_delivered": self.total_delivered
        }
