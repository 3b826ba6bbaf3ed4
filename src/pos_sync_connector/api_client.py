"""
Cliente del API de sincronización.

Todas las peticiones pasan por ``query()``: se construye el cuerpo
``{data, dataVersion, token}``, se verifica la autenticación antes de tocar
la red, se valida la respuesta y se procesa (token, versión de datos,
Business, Register, estado de autenticación y guardado) antes de resolver
o lanzar el error.

El Business y el Register vivos nunca se reemplazan: los snapshots
recibidos se fusionan en las instancias existentes con ``update()``.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .auth import Auth
from .business import Business, Register
from .errors import InvalidResponse, NotAuthenticated, ResponseError
from .models import CashMovement
from .order import Order, OrderChanges
from .serializers import (
    deserialize_order,
    serialize_cash_movement,
    serialize_order,
    serialize_order_changes,
    serialize_register,
)
from .transport import Transport

logger = logging.getLogger(__name__)

# Código de error enviado por el servidor cuando el token no es válido
AUTH_FAILED = "AUTH_FAILED"

VALID_STATUSES = ("ok", "error")

SaveHook = Callable[[Dict[str, Optional[str]]], Any]


class SyncClientState(BaseModel):
    """Estado del cliente, modificado sólo al procesar respuestas"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    token: Optional[str] = None
    data_version: Optional[str] = None
    # Últimos snapshots deserializados (None si el último falló)
    last_business: Optional[Business] = None
    last_register: Optional[Register] = None


class SyncApiClient:
    """
    Cliente del API de sincronización del punto de venta.

    Las operaciones de consulta llaman al transporte directamente y lanzan
    ``ApiError`` si algo falla; ``write()`` es el sink de la
    ``ReliableDeliveryQueue`` para los cambios que se envían sin esperar
    respuesta.
    """

    def __init__(
        self,
        transport: Transport,
        auth: Optional[Auth] = None,
        business: Optional[Business] = None,
        register: Optional[Register] = None,
        save_hook: Optional[SaveHook] = None,
    ):
        """
        Args:
            transport: transporte usado para las peticiones
            auth: objeto de autenticación (se asocia a este cliente)
            business: instancia viva del Business, actualizada en sitio
            register: instancia viva del Register, actualizada en sitio
            save_hook: función que recibe ``{token, dataVersion}`` después de
                cada respuesta
        """
        self.transport = transport
        self.auth: Optional[Auth] = None
        self.business = business
        self.register = register
        self.save_hook = save_hook
        self.state = SyncClientState()
        self.total_queries = 0
        self.total_errors = 0

        if auth is not None:
            auth.attach(self)

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    @property
    def token(self) -> Optional[str]:
        return self.state.token

    @property
    def data_version(self) -> Optional[str]:
        return self.state.data_version

    @property
    def is_authenticated(self) -> bool:
        """True si hay un token y (si hay un Auth asociado) está autenticado"""
        if not self.state.token:
            return False
        if self.auth is not None and not self.auth.authenticated:
            return False
        return True

    def restore_state(self, data: Optional[Dict[str, Any]]) -> None:
        """
        Restaura el token y la versión de datos guardados (ej: por el
        ``StateStore``). Un token restaurado implica estar autenticado.
        """
        if not data:
            return

        if data.get("token"):
            self.state.token = data["token"]
            if self.auth is not None:
                self.auth.mark_authenticated()
        if data.get("dataVersion"):
            self.state.data_version = data["dataVersion"]

        logger.info(f"Estado restaurado (token: {'sí' if self.state.token else 'no'}, "
                    f"versión de datos: {self.state.data_version})")

    def clear_state(self) -> None:
        """Olvida token y versión de datos e invalida la autenticación"""
        self.state.token = None
        self.state.data_version = None
        if self.auth is not None:
            self.auth.invalidate()

    # ------------------------------------------------------------------
    # Peticiones
    # ------------------------------------------------------------------

    def build_request_body(self, data: Any = None, auth_required: bool = True) -> Dict[str, Any]:
        """Construye el cuerpo ``{data?, dataVersion?, token?}`` de una petición"""
        body: Dict[str, Any] = {}
        if data is not None:
            body["data"] = data
        if self.state.data_version is not None:
            body["dataVersion"] = self.state.data_version
        if auth_required and self.state.token:
            body["token"] = self.state.token
        return body

    async def query(self, path: Optional[str], data: Any = None, auth_required: bool = True) -> Any:
        """
        Envía una petición al API y procesa su respuesta.

        Args:
            path: ruta relativa a la URL del API
            data: datos de la petición (se omite si es None)
            auth_required: si la petición requiere estar autenticado

        Returns:
            El campo ``data`` de la respuesta (o None)

        Raises:
            NotAuthenticated: si se requiere autenticación y no hay token válido
            ServerError, NetworkError, InvalidResponse: errores del transporte
            ResponseError: si la respuesta tiene status "error"
        """
        if auth_required and not self.is_authenticated:
            logger.warning(f"Petición a '{path}' rechazada: no autenticado")
            raise NotAuthenticated("No autenticado con el API.")

        body = self.build_request_body(data, auth_required)
        self.total_queries += 1

        try:
            response = await self.transport.post(path, body)
            self.validate_response(response)
            return self.process_response(response)
        except Exception:
            self.total_errors += 1
            raise

    @staticmethod
    def validate_response(response: Any) -> None:
        """
        Verifica que la respuesta sea un objeto con status "ok" o "error".

        Raises:
            InvalidResponse: si la respuesta no tiene la forma esperada
        """
        if not isinstance(response, dict) or response.get("status") not in VALID_STATUSES:
            logger.error(f"Respuesta inesperada del API: {str(response)[:200]}")
            raise InvalidResponse("Respuesta inesperada recibida.")

    def process_response(self, response: Dict[str, Any]) -> Any:
        """
        Procesa una respuesta válida, en este orden:

        1. guarda el token y la versión de datos (si vienen)
        2. fusiona el snapshot del Business (si viene)
        3. fusiona el snapshot del Register (si viene; null = Register nuevo)
        4. actualiza el estado de autenticación
        5. llama al save hook
        6. lanza ResponseError si el status es "error", si no retorna ``data``
        """
        if response.get("token"):
            self.state.token = response["token"]
        if response.get("dataVersion"):
            self.state.data_version = response["dataVersion"]

        if "business" in response:
            self._process_business(response["business"])

        if "deviceRegister" in response:
            self._process_register(response["deviceRegister"])

        error = response.get("error") if isinstance(response.get("error"), dict) else None
        self._update_auth(response, error)

        self._save()

        if response["status"] == "error":
            error = error or {}
            message = error.get("message") or "El API respondió con un error."
            logger.error(f"Error del API: {error.get('code')} {message}")
            raise ResponseError(message, data=error)

        return response.get("data")

    def _process_business(self, data: Any) -> None:
        try:
            new_business = Business.model_validate(data)
        except ValidationError as e:
            logger.error(f"No se pudo deserializar el Business recibido: {e}")
            self.state.last_business = None
            return

        self.state.last_business = new_business
        if self.business is not None:
            self.business.update(new_business)
            logger.info(f"Business {self.business.uuid} actualizado")

    def _process_register(self, data: Any) -> None:
        if data is None:
            new_register = Register()
        else:
            try:
                new_register = Register.model_validate(data)
            except ValidationError as e:
                logger.error(f"No se pudo deserializar el Register recibido: {e}")
                self.state.last_register = None
                return

        self.state.last_register = new_register
        if self.register is not None:
            self.register.update(new_register)
            logger.info(f"Register {self.register.uuid} actualizado (estado: {self.register.state.name})")

    def _update_auth(self, response: Dict[str, Any], error: Optional[Dict[str, Any]]) -> None:
        if error is not None and error.get("code") == AUTH_FAILED:
            logger.warning("El API rechazó el token del dispositivo")
            self.state.token = None
            if self.auth is not None:
                self.auth.invalidate()
        elif response.get("token") and self.auth is not None:
            self.auth.mark_authenticated()

    def _save(self) -> None:
        if self.save_hook is None:
            return

        try:
            self.save_hook({"token": self.state.token, "dataVersion": self.state.data_version})
        except Exception as e:
            logger.error(f"Error guardando el estado del cliente: {e}")

    # ------------------------------------------------------------------
    # Operaciones
    # ------------------------------------------------------------------

    async def link_device(self, code: str, device_uuid: Optional[str] = None) -> Any:
        """Vincula el dispositivo con un código; el API responde con un token"""
        logger.info(f"Vinculando dispositivo {device_uuid}...")
        data = {"code": code, "deviceUUID": device_uuid}
        return await self.query("device/link", data, auth_required=False)

    async def ping(self) -> Any:
        """Petición vacía: mantiene actualizados token, versión y snapshots"""
        return await self.query("ping")

    async def get_business(self) -> Optional[Business]:
        """
        Pide el Business al API. Retorna la instancia viva (actualizada) o,
        si no hay una, el snapshot recibido.
        """
        await self.query("business")
        return self.business if self.business is not None else self.state.last_business

    async def get_register(self) -> Optional[Register]:
        """Igual que ``get_business()`` para el Register del dispositivo"""
        await self.query("register")
        return self.register if self.register is not None else self.state.last_register

    async def next_orders(self, quantity: int, from_order: Optional[Order] = None) -> List[Order]:
        """
        Retorna las ``quantity`` Orders siguientes a ``from_order`` (o las
        más recientes si es None), resolviendo sus productos, modos de pago y
        habitaciones contra el Business vivo.
        """
        data = {
            "quantity": quantity,
            "from": from_order.uuid if from_order is not None else None,
        }
        orders_data = await self.query("orders/next", data) or []
        if not isinstance(orders_data, list):
            logger.error(f"Lista de Orders inválida recibida: {type(orders_data).__name__}")
            raise InvalidResponse("La respuesta no contiene una lista de Orders.")
        business = self.business if self.business is not None else self.state.last_business

        orders: List[Order] = []
        for order_data in orders_data:
            if not isinstance(order_data, dict):
                logger.error(f"Order inválida recibida, se ignora: {order_data!r}")
                continue
            try:
                orders.append(deserialize_order(order_data, business))
            except (ValidationError, AttributeError, TypeError) as e:
                logger.error(f"Order inválida recibida, se ignora: {e}")
        return orders

    async def register_opened(self, register: Register) -> Any:
        return await self.query("register/opened", {"register": serialize_register(register)})

    async def register_closed(self, register: Register) -> Any:
        return await self.query("register/closed", {"register": serialize_register(register)})

    async def cash_movement_added(self, register: Register, cash_movement: CashMovement) -> Any:
        data = {"registerUUID": register.uuid, "cashMovement": serialize_cash_movement(cash_movement)}
        return await self.query("cashMovements/added", data)

    async def cash_movement_removed(self, register: Register, cash_movement: CashMovement) -> Any:
        data = {"registerUUID": register.uuid, "cashMovement": serialize_cash_movement(cash_movement)}
        return await self.query("cashMovements/removed", data)

    async def order_created(self, order: Order) -> Any:
        return await self.query("orders/created", {"order": serialize_order(order)})

    async def order_changed(self, order: Order, changes: OrderChanges) -> Any:
        return await self.query("orders/changed", {"order": serialize_order_changes(order, changes)})

    async def write(self, batch: List[Any]) -> Any:
        """
        Sink de la ``ReliableDeliveryQueue``: envía un lote de cambios
        (``DataChange`` serializados). Lanza si el envío falla para que la
        cola reintente.
        """
        logger.debug(f"Enviando {len(batch)} cambios al API")
        return await self.query("changes", {"changes": batch})

    def get_stats(self) -> dict:
        """
        Obtiene estadísticas del cliente.

        Returns:
            dict con estadísticas
        """
        return {
            "authenticated": self.is_authenticated,
            "data_version": self.state.data_version,
            "total_queries": self.total_queries,
            "total_errors": self.total_errors,
        }
