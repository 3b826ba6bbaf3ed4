"""
Persistencia del estado del cliente (token y versión de datos) en disco.
"""
import json
import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from .base import ApiModel
from .config import settings

logger = logging.getLogger(__name__)


class SavedState(ApiModel):
    """Estado guardado: ``{token, dataVersion, savedAt}``"""
    token: Optional[str] = None
    data_version: Optional[str] = None
    saved_at: Optional[datetime] = None


class StateStore:
    """
    Guarda el estado del ``SyncApiClient`` en un archivo JSON. Se usa como
    save hook del cliente: ``client.save_hook = store.save``.
    """

    MAX_BACKUPS = 3
    FILE_NAME = "sync_state.json"

    def __init__(self, state_dir: Optional[Union[str, Path]] = None):
        """Inicializa el store en ``state_dir`` (default: settings.STATE_DIR)"""
        directory = Path(state_dir if state_dir is not None else settings.STATE_DIR)
        self.STATE_PATH = directory / self.FILE_NAME
        self.BACKUP_PATH = directory / f"{self.FILE_NAME}.backup"

        self.STATE_PATH.parent.mkdir(parents=True, exist_ok=True)

    def load(self) -> Optional[dict]:
        """
        Carga el estado guardado.

        Returns:
            ``{token, dataVersion}`` o None si no hay estado (o está corrupto)
        """
        if not self.STATE_PATH.exists():
            logger.info("No existe estado guardado. Dispositivo sin vincular.")
            return None

        try:
            with open(self.STATE_PATH, 'r', encoding='utf-8') as f:
                state = SavedState.model_validate(json.load(f))
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Estado guardado corrupto: {e}. Se ignora.")
            return None

        logger.info(f"Estado cargado (guardado: {state.saved_at})")
        return {"token": state.token, "dataVersion": state.data_version}

    def save(self, data: dict) -> bool:
        """Guarda ``{token, dataVersion}``, respaldando el archivo anterior"""
        try:
            self.create_backup()

            state = SavedState(
                token=data.get("token"),
                data_version=data.get("dataVersion"),
                saved_at=datetime.now()
            )

            with open(self.STATE_PATH, 'w', encoding='utf-8') as f:
                json.dump(state.model_dump(mode="json", by_alias=True), f, indent=2, ensure_ascii=False)

            # Contiene el token: permisos restrictivos
            self.STATE_PATH.chmod(0o600)

            logger.debug(f"Estado guardado (versión de datos: {state.data_version})")
            return True

        except OSError as e:
            logger.error(f"Error al guardar estado: {e}")
            return False

    def create_backup(self) -> bool:
        """Crea un backup del estado actual antes de sobrescribirlo"""
        if not self.STATE_PATH.exists():
            return True

        try:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            backup_with_ts = Path(f"{self.BACKUP_PATH}.{timestamp}")
            shutil.copy2(self.STATE_PATH, backup_with_ts)

            # Mantener sólo los últimos MAX_BACKUPS
            backups = sorted(self.STATE_PATH.parent.glob(f"{self.BACKUP_PATH.name}.*"))
            for old_backup in backups[:-self.MAX_BACKUPS]:
                old_backup.unlink()
                logger.debug(f"Backup antiguo eliminado: {old_backup}")

            return True

        except OSError as e:
            logger.warning(f"Error al crear backup: {e}")
            return False

    def reset(self) -> bool:
        """Elimina el estado guardado (el dispositivo deberá vincularse de nuevo)"""
        try:
            if self.STATE_PATH.exists():
                self.create_backup()
                self.STATE_PATH.unlink()
                logger.info("Estado eliminado. El dispositivo deberá vincularse de nuevo.")
            return True
        except OSError as e:
            logger.error(f"Error al eliminar estado: {e}")
            return False

    def get_info(self) -> dict:
        """Obtiene información del estado guardado (sin exponer el token)"""
        if not self.STATE_PATH.exists():
            return {
                "exists": False,
                "message": "No existe estado guardado"
            }

        data = self.load()
        if data is None:
            return {
                "exists": True,
                "corrupted": True,
                "message": "Estado corrupto"
            }

        stat = self.STATE_PATH.stat()
        return {
            "exists": True,
            "has_token": bool(data["token"]),
            "data_version": data["dataVersion"],
            "file_size_kb": round(stat.st_size / 1024, 2),
            "file_path": str(self.STATE_PATH)
        }
