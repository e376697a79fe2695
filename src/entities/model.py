import dataclasses
import enum
from types import MappingProxyType

from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict


class BaseModel(PydanticBaseModel):
    model_config = ConfigDict(frozen=True)

    def dict(self, *args, **kwargs) -> dict:  # noqa: ANN101, ANN003, ANN002, ARG002
        """JSON-compatible dict with sets rendered as sorted lists, so log lines are stable between runs."""
        return {name: _stable(value) for name, value in self.model_dump(mode="python").items()}


def _stable(obj):  # noqa: ANN001, ANN202
    if isinstance(obj, (frozenset, set)):
        return sorted(_stable(item) for item in obj)
    if isinstance(obj, (dict, MappingProxyType)):
        return {key: _stable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_stable(item) for item in obj]
    if isinstance(obj, enum.Enum):
        return obj.value
    return obj


def json_default(o: object) -> str | dict | list:
    if isinstance(o, BaseModel):
        return o.dict()
    elif isinstance(o, PydanticBaseModel):
        return o.model_dump(mode="json")
    elif dataclasses.is_dataclass(o) and not isinstance(o, type):
        return _stable(dataclasses.asdict(o))
    elif isinstance(o, (frozenset, set)):
        return _stable(o)
    elif isinstance(o, enum.Enum):
        return o.value
    return str(o)
