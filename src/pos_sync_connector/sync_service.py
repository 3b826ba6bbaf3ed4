"""
Agente de sincronización: compone todas las piezas del conector.
"""
import asyncio
import logging
from typing import Optional

from .api_client import SyncApiClient
from .auth import Auth
from .business import Business, Register
from .config import settings
from .delivery_queue import ReliableDeliveryQueue
from .errors import ApiError
from .propagation import ChangePropagator
from .state_store import StateStore
from .transport import RequestsTransport, Transport

logger = logging.getLogger(__name__)


class SyncAgent:
    """
    Agente que orquesta la sincronización del punto de venta con el API.

    Es dueño de:
    1. El Business y el Register vivos (nunca se reemplazan)
    2. El cliente del API, su autenticación y la persistencia de su estado
    3. La cola de envío confiable, cuyo sink es ``client.write``
    4. La propagación de cambios de las entidades hacia la cola
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        state_store: Optional[StateStore] = None,
        retry_delay: Optional[float] = None,
        device_uuid: Optional[str] = None,
    ):
        """Inicializa el agente (no hace peticiones hasta ``start()``)"""
        self.business = Business()
        self.register = Register()
        self.transport = transport if transport is not None else RequestsTransport()
        self.state_store = state_store if state_store is not None else StateStore()
        self.auth = Auth(device_uuid=device_uuid)
        self.client = SyncApiClient(
            self.transport,
            auth=self.auth,
            business=self.business,
            register=self.register,
            save_hook=self.state_store.save,
        )
        self.queue = ReliableDeliveryQueue(self.client.write, retry_delay=retry_delay)
        self.propagator = ChangePropagator(self.queue, self.business, self.register)
        self.started = False

    def start(self) -> None:
        """Restaura el estado guardado y comienza a propagar cambios"""
        if self.started:
            return

        self.client.restore_state(self.state_store.load())
        self.propagator.start()
        self.started = True
        logger.info(f"Agente de sincronización iniciado (autenticado: {self.client.is_authenticated})")

    async def stop(self) -> None:
        """Deja de propagar cambios y cierra el transporte"""
        self.propagator.stop()
        if not self.queue.is_idle:
            logger.warning(f"Deteniendo con {self.queue.pending} cambios pendientes de envío")
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()
        self.started = False
        logger.info("Agente de sincronización detenido")

    async def link(self, code: str) -> None:
        """
        Vincula el dispositivo con el API.

        Raises:
            ApiError: si la vinculación falla
        """
        await self.auth.authenticate(code)
        logger.info(f"Dispositivo vinculado (autenticado: {self.client.is_authenticated})")

    async def refresh(self) -> dict:
        """
        Actualiza el Business y el Register desde el API.

        Returns:
            dict con el resumen de lo actualizado

        Raises:
            ApiError: si alguna de las peticiones falla
        """
        logger.info("Actualizando Business y Register desde el API...")

        try:
            await self.client.get_business()
            await self.client.get_register()
        except ApiError as e:
            logger.error(f"Error al actualizar desde el API: {e.message}")
            raise

        logger.info(
            f"Actualización completada: {len(self.business.products)} productos, "
            f"caja {self.register.state.name}"
        )
        return {
            "business_uuid": self.business.uuid,
            "products": len(self.business.products),
            "rooms": len(self.business.rooms),
            "register_uuid": self.register.uuid,
            "register_state": self.register.state.name,
        }

    async def ping_forever(self, interval: Optional[float] = None) -> None:
        """
        Hace un ping al API cada ``interval`` segundos (default:
        settings.PING_INTERVAL_SECONDS) hasta ser cancelado. Los errores se
        registran y no detienen el ciclo.
        """
        interval = settings.PING_INTERVAL_SECONDS if interval is None else interval

        while True:
            await asyncio.sleep(interval)

            if not self.client.is_authenticated:
                logger.debug("Ping omitido: no autenticado")
                continue

            try:
                await self.client.ping()
            except ApiError as e:
                logger.warning(f"Ping al API fallido: {e.message}")

    def reset_state(self) -> None:
        """Olvida el token y la versión de datos (en memoria y en disco)"""
        self.client.clear_state()
        self.state_store.reset()

    def status(self) -> dict:
        """
        Obtiene el estado del agente.

        Returns:
            dict con el estado del cliente, la cola y el estado guardado
        """
        return {
            "started": self.started,
            "authenticated": self.client.is_authenticated,
            "data_version": self.client.data_version,
            "business_uuid": self.business.uuid,
            "register_uuid": self.register.uuid,
            "register_state": self.register.state.name,
            "client": self.client.get_stats(),
            "queue": self.queue.get_stats(),
            "state_file": self.state_store.get_info(),
        }
