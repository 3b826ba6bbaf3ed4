"""
Campos personalizados (pares nombre-valor) usados por Customer y RoomSelection.

Cada tipo de campo lleva su propia regla de validación y se identifica en su
forma serializada por el discriminador ``type``.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field as PydanticField

from .base import ApiModel

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class Field(ApiModel):
    """
    Campo genérico. Sólo valida la presencia si ``required`` es True.

    ``role`` permite al servidor marcar un campo como portador de una
    información específica (ej: el nombre o el email del cliente).
    """
    type: Literal["Field"] = "Field"
    id: str = PydanticField(description="Identificador único del campo")
    label: Optional[str] = None
    role: Optional[str] = None
    required: bool = False

    def validate_value(self, value: Any) -> Optional[List[str]]:
        """
        Valida ``value`` para este campo.

        Returns:
            None si el valor es válido, si no una lista de mensajes de error
        """
        if value is None or value == "":
            return ["Este campo es obligatorio."] if self.required else None

        errors = self._check(value)
        return errors or None

    def _check(self, value: Any) -> List[str]:
        return []


class TextField(Field):
    """Campo que sólo acepta cadenas de texto"""
    type: Literal["TextField"] = "TextField"

    def _check(self, value: Any) -> List[str]:
        if not isinstance(value, str):
            return ["El valor debe ser un texto."]
        return []


class NameField(Field):
    """Campo para nombres propios (sin validación de formato por ahora)"""
    type: Literal["NameField"] = "NameField"


class PhoneField(Field):
    """Campo para números de teléfono (sin validación de formato por ahora)"""
    type: Literal["PhoneField"] = "PhoneField"


class EmailField(Field):
    """Campo que sólo acepta una dirección de email"""
    type: Literal["EmailField"] = "EmailField"

    def _check(self, value: Any) -> List[str]:
        if not isinstance(value, str) or not EMAIL_PATTERN.match(value):
            return ["El valor no es un email válido."]
        return []


class NumberField(Field):
    """
    Campo numérico. ``constraints`` acepta las claves ``onlyInteger``,
    ``greaterThan``, ``greaterThanOrEqualTo``, ``lessThan`` y
    ``lessThanOrEqualTo``.
    """
    type: Literal["NumberField"] = "NumberField"
    constraints: Dict[str, Any] = PydanticField(default_factory=dict)

    def _check(self, value: Any) -> List[str]:
        if isinstance(value, bool):
            return ["El valor debe ser numérico."]
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ["El valor debe ser numérico."]
        if not number.is_finite():
            return ["El valor debe ser numérico."]

        errors = []
        c = self.constraints
        if c.get("onlyInteger") and number != number.to_integral_value():
            errors.append("El valor debe ser un entero.")
        if "greaterThan" in c and not number > Decimal(str(c["greaterThan"])):
            errors.append(f"El valor debe ser mayor que {c['greaterThan']}.")
        if "greaterThanOrEqualTo" in c and not number >= Decimal(str(c["greaterThanOrEqualTo"])):
            errors.append(f"El valor debe ser mayor o igual que {c['greaterThanOrEqualTo']}.")
        if "lessThan" in c and not number < Decimal(str(c["lessThan"])):
            errors.append(f"El valor debe ser menor que {c['lessThan']}.")
        if "lessThanOrEqualTo" in c and not number <= Decimal(str(c["lessThanOrEqualTo"])):
            errors.append(f"El valor debe ser menor o igual que {c['lessThanOrEqualTo']}.")
        return errors


class SelectField(Field):
    """Campo cuyo valor debe estar en ``values`` (valor -> etiqueta)"""
    type: Literal["SelectField"] = "SelectField"
    values: Dict[str, str] = PydanticField(default_factory=dict)

    def get_values(self) -> List[str]:
        return list(self.values.keys())

    def get_label(self, value: str) -> Optional[str]:
        return self.values.get(value)

    def _check(self, value: Any) -> List[str]:
        if str(value) not in self.values:
            return [f"El valor debe ser uno de: {', '.join(self.get_values())}."]
        return []


class YesNoField(Field):
    """Campo que sólo acepta 1 (sí) o 0 (no)"""
    type: Literal["YesNoField"] = "YesNoField"

    def _check(self, value: Any) -> List[str]:
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = None
        if number not in (0.0, 1.0):
            return ["Los valores válidos son 1 y 0."]
        return []


AnyField = Annotated[
    Union[
        Field,
        TextField,
        NameField,
        PhoneField,
        EmailField,
        NumberField,
        SelectField,
        YesNoField,
    ],
    PydanticField(discriminator="type"),
]
