"""
Punto de entrada del servicio local de sincronización POS.

Levanta la API local (estado, vinculación, cola de cambios) con uvicorn.
El host y el puerto salen de la configuración y pueden sobreescribirse
desde la línea de comandos.
"""
import argparse
import logging

import uvicorn

from .config import settings

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Servicio local de sincronización POS")
    parser.add_argument("--host", default=settings.HOST, help=f"Host de escucha (default: {settings.HOST})")
    parser.add_argument("--port", type=int, default=settings.PORT, help=f"Puerto (default: {settings.PORT})")
    return parser


def main(argv=None):
    """
    Ejecuta el servidor FastAPI con uvicorn.
    """
    args = build_parser().parse_args(argv)

    logger.info(
        f"Iniciando servicio en {args.host}:{args.port} "
        f"(API: {settings.API_URL}, dispositivo: {settings.DEVICE_UUID})"
    )
    uvicorn.run(
        "pos_sync_connector.api:app",
        host=args.host,
        port=args.port,
        reload=False,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
