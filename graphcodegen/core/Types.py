from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterator, Optional

# Reserved kind names. Every other kind string is a plain data type.
EXEC = "exec"
DATA = "data"


class PortDirection(Enum):
    INPUT = "input"
    OUTPUT = "output"

    def opposite(self) -> "PortDirection":
        return PortDirection.OUTPUT if self == PortDirection.INPUT else PortDirection.INPUT


# Value slot types a node definition may declare.
class ValueType(Enum):
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    STRING = "string"
    COLOR = "color"
    FLOAT3 = "float3"

    @staticmethod
    def validate(value: Any, value_type: 'ValueType') -> bool:
        if value is None:
            return True

        if value_type == ValueType.BOOL:
            return isinstance(value, bool)
        elif value_type == ValueType.INT:
            return isinstance(value, int) and not isinstance(value, bool)
        elif value_type == ValueType.FLOAT:
            return isinstance(value, (float, int)) and not isinstance(value, bool) # Allow ints to pass as floats
        elif value_type == ValueType.STRING:
            return isinstance(value, str)
        elif value_type == ValueType.COLOR:
            return isinstance(value, str) # Hex string
        elif value_type == ValueType.FLOAT3:
            if not isinstance(value, dict):
                return False
            return all(isinstance(value.get(k, 0), (int, float)) for k in ("x", "y", "z"))

        return False


def is_exec_kind(kind: str) -> bool:
    return kind == EXEC


@dataclass
class DataType:
    name: str
    color: str = "#808080"

    @classmethod
    def from_dict(cls, type_name: str, data: Dict[str, Any]) -> "DataType":
        return cls(
            name=data.get("name", type_name),
            color=data.get("color", "#808080"),
        )


class DataTypeRegistry:
    """
    Display metadata for port kinds, keyed by type name.

    Purely advisory: connection rules only look at kind strings and the two
    reserved names, so a kind without an entry here is still a valid data kind.
    """

    def __init__(self) -> None:
        self._types: Dict[str, DataType] = {}

    def register(self, type_name: str, data_type: DataType) -> None:
        self._types[type_name] = data_type

    def merge(self, data_types: Dict[str, Dict[str, Any]]) -> None:
        for type_name, data in data_types.items():
            self.register(type_name, DataType.from_dict(type_name, data or {}))

    def get(self, type_name: str) -> Optional[DataType]:
        return self._types.get(type_name)

    def color_for(self, type_name: str, default: str = "#808080") -> str:
        data_type = self._types.get(type_name)
        return data_type.color if data_type else default

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._types

    def __iter__(self) -> Iterator[str]:
        return iter(self._types)

    def __len__(self) -> int:
        return len(self._types)

    def to_dict(self) -> Dict[str, Dict[str, str]]:
        return {k: {"name": v.name, "color": v.color} for k, v in self._types.items()}
