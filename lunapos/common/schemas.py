"""
Base schema pieces shared by every module

- CamelModel: camelCase on the wire, snake_case in Python, ORM-friendly
- Money: Decimal in Python, plain JSON number on the wire
"""

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def _money_to_number(value: Decimal):
    if value is None:
        return None
    number = Decimal(value)
    if number == number.to_integral_value():
        return int(number)
    return float(number)


Money = Annotated[Decimal, PlainSerializer(_money_to_number, when_used="json")]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True
    )


class MessageOut(CamelModel):
    message: str
