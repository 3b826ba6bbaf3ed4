"""
Configuración del conector de sincronización POS.

Carga las variables de entorno necesarias para la operación del conector.
"""
from pydantic_settings import BaseSettings
from pydantic import Field, validator


class Settings(BaseSettings):
    """
    Configuración de la aplicación cargada desde variables de entorno.
    """
    # Configuración del API remoto
    API_URL: str = Field(
        default="https://api.example.com/1.0",
        description="URL base del API de sincronización (ej: https://pos.example.com/api/1.0)"
    )
    API_TIMEOUT: float = Field(
        default=30.0,
        description="Timeout en segundos de cada petición al API",
        gt=0
    )
    DEVICE_UUID: str = Field(
        default="",
        description="UUID del dispositivo usado al vincularlo con el API"
    )

    # Configuración de la cola de envío
    RETRY_DELAY_SECONDS: float = Field(
        default=60.0,
        description="Espera en segundos antes de reintentar un envío fallido",
        ge=0
    )
    PING_INTERVAL_SECONDS: float = Field(
        default=300.0,
        description="Intervalo en segundos entre pings al API",
        gt=0
    )

    # Persistencia del estado (token y versión de datos)
    STATE_DIR: str = Field(
        default="./data",
        description="Directorio donde se guarda el estado de sincronización"
    )

    # Configuración del servidor local
    HOST: str = Field(
        default="127.0.0.1",
        description="Host donde escuchará el servidor FastAPI local"
    )
    PORT: int = Field(
        default=8000,
        description="Puerto donde escuchará el servidor FastAPI local"
    )

    # Configuración de logging
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR)"
    )

    @validator('API_URL')
    def validate_api_url(cls, v):
        """Valida que la URL del API tenga el formato correcto"""
        if not v.startswith(('https://', 'http://')):
            raise ValueError("API_URL debe comenzar con http:// o https://")
        if v.endswith('/'):
            v = v[:-1]  # Remover trailing slash
        return v

    @validator('LOG_LEVEL')
    def validate_log_level(cls, v):
        """Valida que el nivel de log sea válido"""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL debe ser uno de: {valid_levels}")
        return v.upper()

    class Config:
        """Configuración de Pydantic Settings"""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Instancia global de configuración
settings = Settings()
