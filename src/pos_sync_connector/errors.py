"""
Excepciones del cliente del API de sincronización.

Cada excepción lleva un código numérico estable y un mensaje, y puede
convertirse al objeto ``{code, message}`` que recibe el código de la aplicación.
"""
from typing import Optional


class ApiError(Exception):
    """Excepción base para errores del API de sincronización"""

    code: int = -1

    def __init__(self, message: str = "", data: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.data = data

    def to_dict(self) -> dict:
        """Retorna el error como ``{code, message}``"""
        return {"code": self.code, "message": self.message}


class ServerError(ApiError):
    """El API respondió con un status HTTP fuera del rango 2xx"""
    code = 0


class NetworkError(ApiError):
    """La petición no pudo completarse (conexión, timeout, DNS...)"""
    code = 1


class InvalidResponse(ApiError):
    """La respuesta no es JSON válido o no tiene la forma esperada"""
    code = 2


class ResponseError(ApiError):
    """
    Respuesta bien formada con status "error".

    ``data`` contiene el objeto ``error`` enviado por el servidor.
    """
    code = 3

    @property
    def error_code(self) -> Optional[str]:
        """Código de error enviado por el servidor, si existe"""
        if isinstance(self.data, dict):
            return self.data.get("code")
        return None


class NotAuthenticated(ApiError):
    """La petición requiere autenticación y no hay un token válido"""
    code = 4
