from dataclasses import dataclass, field
from typing import Any, Dict, NamedTuple, Optional, TYPE_CHECKING

from .Types import PortDirection, is_exec_kind

# To avoid circular imports only for typing
if TYPE_CHECKING:
    from ..noderegistry.NodeRegistry import PortDef


class PortRef(NamedTuple):
    """Addresses a port by (node id, side, index); links never hold port objects."""
    node_id: int
    direction: PortDirection
    index: int

    def isInput(self) -> bool:
        return self.direction == PortDirection.INPUT

    def isOutput(self) -> bool:
        return self.direction == PortDirection.OUTPUT

    def to_dict(self) -> Dict[str, Any]:
        return {"nodeId": self.node_id, "portIndex": self.index, "portType": self.direction.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PortRef":
        return cls(int(data["nodeId"]), PortDirection(data["portType"]), int(data["portIndex"]))

    def __repr__(self):
        return f"PortRef({self.node_id}.{self.direction.value}[{self.index}])"


@dataclass
class Port:
    """
    Per-instance copy of a port definition.

    `kind` is either the control-flow sentinel "exec" or a data type name.
    x/y are layout state derived by the owning node and never take part in
    equality.
    """
    kind: str
    direction: PortDirection
    index: int
    name: Optional[str] = None
    code: Optional[str] = None
    dynamic: Optional[Dict[str, Any]] = None
    x: float = field(default=0.0, compare=False)
    y: float = field(default=0.0, compare=False)

    @classmethod
    def from_def(cls, port_def: 'PortDef', direction: PortDirection, index: int) -> "Port":
        return cls(
            kind=port_def.type,
            direction=direction,
            index=index,
            name=port_def.name,
            code=port_def.code,
            dynamic=dict(port_def.dynamic) if port_def.dynamic else None,
        )

    def sync(self, port_def: 'PortDef') -> None:
        self.kind = port_def.type
        self.name = port_def.name
        self.code = port_def.code
        self.dynamic = dict(port_def.dynamic) if port_def.dynamic else None

    def isExecPort(self) -> bool:
        return is_exec_kind(self.kind)

    def isDataPort(self) -> bool:
        return not is_exec_kind(self.kind)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "type": self.kind,
            "name": self.name,
            "direction": self.direction.value,
            "index": self.index,
            "x": self.x,
            "y": self.y,
        }
        if self.dynamic:
            result["dynamic"] = self.dynamic
        return result
