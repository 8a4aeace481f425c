from typing import Any, Dict, List, Optional, TYPE_CHECKING
import copy
import logging

from .NodePort import Port, PortRef
from .Types import PortDirection, ValueType, EXEC
from ..noderegistry.NodeRegistry import DEFAULT_MIN_WIDTH

# To avoid circular imports only for typing
if TYPE_CHECKING:
    from ..noderegistry.NodeRegistry import NodeRegistry, NodeTypeDef


# Get a logger for this module
logger = logging.getLogger(__name__)

# --- Layout constants ---
PORT_SPACING = 25
PORT_OFFSET_X = 10
PORT_OFFSET_Y = 40   # Ports start below the title band
PORT_RADIUS = 8      # Hit radius around a port centre
MIN_NODE_HEIGHT = 60
VALUE_SLOT_HEIGHT = 30


class Node:
    """
    A node instance built from a catalog definition.

    Port count and order are fixed at construction; everything else the
    interaction layer needs (geometry, hit testing, selection) lives here too.
    """

    def __init__(self,
                 node_id: int,
                 x: float,
                 y: float,
                 category: str,
                 type: str,
                 registry: 'NodeRegistry'):

        # Fails before any state is assigned, so no half-built node escapes.
        node_def = registry.require_node_type(category, type)

        self.id = node_id
        self.x = x
        self.y = y
        self.category = category
        self.type = type
        self.selected = False

        self.title = node_def.title
        self.color = registry.node_color(category, node_def)
        self.description = node_def.description

        # Fresh ports for every non-implicit definition
        self.inputs: List[Port] = self._build_ports(node_def, PortDirection.INPUT)
        self.outputs: List[Port] = self._build_ports(node_def, PortDirection.OUTPUT)

        # Value slot
        self.has_value = node_def.value is not None
        self.value_type: Optional[ValueType] = node_def.value.type if node_def.value else None
        self.value: Any = copy.deepcopy(node_def.value.default) if node_def.value else None

        self.width = node_def.min_width or DEFAULT_MIN_WIDTH
        max_ports = max(len(self.inputs), len(self.outputs))
        self.height = max(MIN_NODE_HEIGHT, PORT_OFFSET_Y + max_ports * PORT_SPACING)
        if self.has_value:
            self.height += VALUE_SLOT_HEIGHT

        self.update_port_positions()

    def __repr__(self):
        return f"Node({self.id}, {self.category}/{self.type})"

    @staticmethod
    def _build_ports(node_def: 'NodeTypeDef', direction: PortDirection) -> List[Port]:
        port_defs = node_def.inputs if direction == PortDirection.INPUT else node_def.outputs
        visible = [p for p in port_defs if not p.implicit]
        return [Port.from_def(p, direction, i) for i, p in enumerate(visible)]

    @property
    def exec_out_port_count(self) -> int:
        return sum(1 for p in self.outputs if p.isExecPort())

    # --- Ports ---

    def ports(self, direction: PortDirection) -> List[Port]:
        return self.inputs if direction == PortDirection.INPUT else self.outputs

    def port(self, direction: PortDirection, index: int) -> Optional[Port]:
        ports = self.ports(direction)
        if 0 <= index < len(ports):
            return ports[index]
        return None

    def ref(self, direction: PortDirection, index: int) -> PortRef:
        return PortRef(self.id, direction, index)

    def exec_inputs(self) -> List[Port]:
        return [p for p in self.inputs if p.kind == EXEC]

    def sync_ports(self, node_def: 'NodeTypeDef') -> None:
        """Refresh port kinds/names/templates from a reloaded definition. Count and order never change."""
        for direction in (PortDirection.INPUT, PortDirection.OUTPUT):
            port_defs = node_def.inputs if direction == PortDirection.INPUT else node_def.outputs
            visible = [p for p in port_defs if not p.implicit]
            for port, port_def in zip(self.ports(direction), visible):
                port.sync(port_def)

    # --- Value ---

    def set_value(self, value: Any) -> None:
        if not self.has_value:
            raise ValueError(f"Node {self.id} ({self.category}/{self.type}) has no value slot")

        # --- TYPE CHECKING RUNTIME ---
        if not ValueType.validate(value, self.value_type):
            logger.warning(f"Node {self.id} value expected {self.value_type.value}, got {type(value).__name__}")
        self.value = value

    # --- Geometry ---

    def move_to(self, x: float, y: float) -> None:
        self.x = x
        self.y = y
        self.update_port_positions()

    def update_port_positions(self) -> None:
        for i, port in enumerate(self.inputs):
            port.x = self.x + PORT_OFFSET_X
            port.y = self.y + PORT_OFFSET_Y + i * PORT_SPACING

        for i, port in enumerate(self.outputs):
            port.x = self.x + self.width - PORT_OFFSET_X
            port.y = self.y + PORT_OFFSET_Y + i * PORT_SPACING

    def contains_point(self, x: float, y: float) -> bool:
        return (self.x <= x <= self.x + self.width and
                self.y <= y <= self.y + self.height)

    def port_at(self, x: float, y: float) -> Optional[PortRef]:
        for port in self.inputs + self.outputs:
            dx = x - port.x
            dy = y - port.y
            if dx * dx + dy * dy <= PORT_RADIUS * PORT_RADIUS:
                return self.ref(port.direction, port.index)
        return None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "id": self.id,
            "category": self.category,
            "type": self.type,
            "title": self.title,
            "color": self.color,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "selected": self.selected,
            "inputs": [p.to_dict() for p in self.inputs],
            "outputs": [p.to_dict() for p in self.outputs],
        }
        if self.has_value:
            result["valueType"] = self.value_type.value
            result["value"] = self.value
        return result
