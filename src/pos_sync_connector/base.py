"""
Modelo base de las entidades intercambiadas con el API.

El API usa camelCase en su JSON (``transactionModes``, ``fieldValues``...);
en Python los atributos se usan en snake_case.
"""
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Modelo Pydantic que acepta y produce JSON en camelCase"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )
