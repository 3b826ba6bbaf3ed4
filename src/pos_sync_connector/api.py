"""
API FastAPI local del conector de sincronización POS.

Expone el estado del agente y permite vincular el dispositivo, actualizar
los datos del negocio y administrar la cola de envío.
"""
import asyncio
import logging
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .config import settings
from .errors import ApiError, NotAuthenticated, ResponseError
from .sync_service import SyncAgent

# Configurar logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


class LinkRequest(BaseModel):
    code: str = Field(..., min_length=1, description="Código de vinculación entregado por el API")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager para FastAPI.
    Inicia el agente y el ping periódico; los detiene al apagar.
    """
    logger.info("Iniciando conector de sincronización POS...")
    logger.info(f"API: {settings.API_URL} - Dispositivo: {settings.DEVICE_UUID or '(sin UUID)'}")
    sync_agent.start()
    ping_task = asyncio.create_task(sync_agent.ping_forever())
    yield
    logger.info("Apagando conector de sincronización POS...")
    ping_task.cancel()
    with suppress(asyncio.CancelledError):
        await ping_task
    await sync_agent.stop()


# Crear aplicación FastAPI
app = FastAPI(
    title="Conector de Sincronización POS",
    description="Sincroniza órdenes, caja y datos del negocio de un punto de venta con el API remoto",
    version=VERSION,
    lifespan=lifespan
)

# Instancia del agente de sincronización (singleton)
sync_agent = SyncAgent()


def _api_error_to_http(e: ApiError, action: str) -> HTTPException:
    if isinstance(e, NotAuthenticated):
        status_code = status.HTTP_401_UNAUTHORIZED
    elif isinstance(e, ResponseError):
        status_code = status.HTTP_502_BAD_GATEWAY
    else:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HTTPException(status_code=status_code, detail=f"Error al {action}: {e.message}")


@app.get("/")
async def root():
    """
    Endpoint raíz para verificar que la API está funcionando.
    """
    return {
        "service": "POS Sync Connector",
        "status": "running",
        "version": VERSION,
        "api_url": settings.API_URL
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    """
    return {"status": "healthy"}


@app.get("/status")
async def get_status():
    """
    Estado del agente: autenticación, versión de datos, caja y cola de envío.
    """
    return sync_agent.status()


@app.post("/auth/link")
async def link_device(request: LinkRequest):
    """
    Vincula el dispositivo con el código recibido.

    Raises:
        HTTPException 502: Si el API rechaza el código
        HTTPException 503: Si no se pudo contactar al API
    """
    logger.info("Vinculando dispositivo...")
    try:
        await sync_agent.link(request.code)
    except ApiError as e:
        logger.error(f"Error al vincular dispositivo: {e.message}")
        raise _api_error_to_http(e, "vincular dispositivo")

    return {
        "success": True,
        "authenticated": sync_agent.client.is_authenticated,
        "message": "Dispositivo vinculado"
    }


@app.post("/refresh")
async def refresh():
    """
    Actualiza el Business y el Register desde el API.

    Raises:
        HTTPException 401: Si el dispositivo no está vinculado
        HTTPException 502/503: Si el API respondió con error o no respondió
    """
    try:
        summary = await sync_agent.refresh()
    except ApiError as e:
        raise _api_error_to_http(e, "actualizar")

    return {"success": True, **summary}


@app.get("/queue")
async def get_queue():
    """
    Cambios pendientes de envío y estadísticas de la cola.
    """
    return {
        **sync_agent.queue.get_stats(),
        "entries": sync_agent.queue.get_current_queue()
    }


@app.post("/queue/flush")
async def flush_queue(timeout: float = 10.0):
    """
    Espera (hasta ``timeout`` segundos) a que la cola se vacíe. El intento
    en curso no se cancela si se agota el tiempo.
    """
    try:
        await asyncio.wait_for(sync_agent.queue.flush(), timeout=timeout)
    except asyncio.TimeoutError:
        return {
            "success": False,
            "pending": sync_agent.queue.pending,
            "message": f"La cola no se vació en {timeout}s; se seguirá reintentando"
        }

    return {
        "success": True,
        "pending": sync_agent.queue.pending,
        "message": "Cola enviada"
    }


@app.post("/state/reset")
async def reset_state():
    """
    Olvida el token y la versión de datos. El dispositivo deberá vincularse
    de nuevo.
    """
    sync_agent.reset_state()
    return {
        "success": True,
        "message": "Estado eliminado. El dispositivo deberá vincularse de nuevo."
    }


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc):
    """
    Handler personalizado para HTTPException.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail
        }
    )
