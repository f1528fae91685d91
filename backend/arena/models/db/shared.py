import json
from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseModelORM(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def parse_json_column(value: Any) -> Any:
    """
    Raw queries hand JSON columns back as text, while models built in Python pass them as
    dicts or lists already.
    """
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


def dump_json_column(value: BaseModel | list[BaseModel] | None) -> str | None:
    if value is None:
        return None
    if isinstance(value, list):
        return json.dumps([item.model_dump(mode="json") for item in value])
    return value.model_dump_json()
