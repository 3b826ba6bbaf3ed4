"""
CLI para administrar el conector de sincronización POS desde línea de comandos.
"""
import sys
import asyncio
import logging

from .sync_service import SyncAgent
from .errors import ApiError
from .config import settings

# Configurar logging para CLI
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60 + "\n")


def create_agent() -> SyncAgent:
    """Crea el agente y restaura el estado guardado"""
    agent = SyncAgent()
    agent.start()
    return agent


def show_status():
    """Muestra el estado del agente y del estado guardado"""
    _banner("ESTADO DEL CONECTOR")

    agent = create_agent()
    info = agent.status()
    state_file = info["state_file"]

    print(f"API:                   {settings.API_URL}")
    print(f"Autenticado:           {'Sí' if info['authenticated'] else 'No'}")
    print(f"Versión de datos:      {info['data_version'] or '-'}")
    print()

    if not state_file.get("exists"):
        print("❌ No existe estado guardado.")
        print("   Vincule el dispositivo con el comando 'link'.")
        return 0

    if state_file.get("corrupted"):
        print("⚠️  Estado guardado corrupto.")
        print("   Ejecute 'reset-state' y vincule el dispositivo de nuevo.")
        return 1

    print(f"✓ Estado guardado:      {state_file['file_path']}")
    print(f"  Tamaño del archivo:   {state_file['file_size_kb']} KB")
    print()

    return 0


def link_device(code: str):
    """Vincula el dispositivo con el código recibido"""
    _banner("VINCULAR DISPOSITIVO")

    print(f"API:          {settings.API_URL}")
    print(f"Dispositivo:  {settings.DEVICE_UUID or '(sin UUID)'}")
    print()

    agent = create_agent()
    try:
        asyncio.run(agent.link(code))
    except ApiError as e:
        print(f"❌ ERROR AL VINCULAR (código {e.code}):")
        print(f"   {e.message}")
        print()
        return 1

    print("✓ Dispositivo vinculado exitosamente.")
    return 0


def refresh():
    """Actualiza el Business y el Register desde el API"""
    _banner("ACTUALIZAR DATOS DEL NEGOCIO")

    agent = create_agent()
    try:
        summary = asyncio.run(agent.refresh())
    except ApiError as e:
        print(f"❌ ERROR AL ACTUALIZAR (código {e.code}):")
        print(f"   {e.message}")
        print()
        return 1

    print(f"Business:     {summary['business_uuid']}")
    print(f"Productos:    {summary['products']}")
    print(f"Habitaciones: {summary['rooms']}")
    print(f"Caja:         {summary['register_uuid'] or '-'} ({summary['register_state']})")
    print()
    return 0


def ping():
    """Hace un ping al API"""
    _banner("PING AL API")

    agent = create_agent()
    try:
        asyncio.run(agent.client.ping())
    except ApiError as e:
        print(f"❌ ERROR (código {e.code}):")
        print(f"   {e.message}")
        print()
        return 1

    print(f"✓ El API respondió. Versión de datos: {agent.client.data_version or '-'}")
    return 0


def reset_state():
    """Elimina el estado guardado"""
    _banner("RESETEAR ESTADO")

    print("⚠️  Esto eliminará el token y el dispositivo deberá vincularse de nuevo.")

    agent = create_agent()
    if agent.state_store.reset():
        agent.client.clear_state()
        print("✓ Estado eliminado exitosamente.")
        return 0
    else:
        print("❌ Error al eliminar estado.")
        return 1


def main(argv=None):
    """Punto de entrada del CLI"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Conector de sincronización POS",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  %(prog)s status                  Ver estado del conector
  %(prog)s link CODIGO             Vincular el dispositivo
  %(prog)s refresh                 Actualizar Business y Register
  %(prog)s ping                    Hacer un ping al API
  %(prog)s reset-state             Eliminar token y versión de datos
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Comando a ejecutar')

    subparsers.add_parser('status', help='Ver estado del conector')

    link_parser = subparsers.add_parser('link', help='Vincular el dispositivo con un código')
    link_parser.add_argument('code', help='Código de vinculación')

    subparsers.add_parser('refresh', help='Actualizar Business y Register desde el API')
    subparsers.add_parser('ping', help='Hacer un ping al API')
    subparsers.add_parser('reset-state', help='Eliminar el estado guardado')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'status':
        return show_status()
    elif args.command == 'link':
        return link_device(args.code)
    elif args.command == 'refresh':
        return refresh()
    elif args.command == 'ping':
        return ping()
    elif args.command == 'reset-state':
        return reset_state()

    return 0


if __name__ == "__main__":
    sys.exit(main())
