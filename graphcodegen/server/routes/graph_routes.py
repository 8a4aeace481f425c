"""
Graph REST routes.

All routes are mounted under /api by main.py. Handlers are `async def`, so
they run one at a time on the event loop and never interleave with each
other's mutations.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, ConfigDict, Field

from ...compiler import GenerationError
from ...core.NodePort import PortRef
from ...core.Types import PortDirection
from ...noderegistry.NodeRegistry import DefinitionNotFoundError
from ...serializers.schema import SchemaError
from ..state import EditorState, get_state

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request bodies ────────────────────────────────────────────────────────────

class PortRefBody(BaseModel):
    nodeId: int
    portIndex: int
    portType: PortDirection

    def to_ref(self) -> PortRef:
        return PortRef(self.nodeId, self.portType, self.portIndex)


class CreateNodeBody(BaseModel):
    category: str
    type: str
    x: float = 0
    y: float = 0
    # Optional pending port to wire to the new node
    connectFrom: Optional[PortRefBody] = None


class PositionBody(BaseModel):
    x: float
    y: float


class ValueBody(BaseModel):
    value: Any = None


class CreateLinkBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source: PortRefBody = Field(alias="from")
    target: PortRefBody = Field(alias="to")


def _node_or_404(state: EditorState, node_id: int):
    try:
        return state.get_node(node_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Node {node_id} not found")


# ── Registry ──────────────────────────────────────────────────────────────────

@router.get("/registry")
async def get_registry(state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    return state.registry.summary()


@router.post("/registry")
async def add_registry(document: Dict[str, Any], state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    try:
        removed = state.add_registry(document)
    except (ValueError, KeyError) as exc:
        raise HTTPException(status_code=400, detail=f"Invalid registry document: {exc}")
    return {"registry": state.registry.summary(), "removedLinks": [l.id for l in removed]}


@router.get("/node-types")
async def list_node_types(state: EditorState = Depends(get_state)) -> List[Dict[str, Any]]:
    result = []
    for category, type_name, node_def in state.registry.iter_node_types():
        result.append({
            "category": category,
            "type": type_name,
            "title": node_def.title,
            "color": state.registry.node_color(category, node_def),
            "description": node_def.description,
            "inputs": [{"type": p.type, "name": p.name} for p in node_def.inputs if not p.implicit],
            "outputs": [{"type": p.type, "name": p.name} for p in node_def.outputs if not p.implicit],
            "valueType": node_def.value.type.value if node_def.value else None,
        })
    return result


# ── Graph document ────────────────────────────────────────────────────────────

@router.get("/graph")
async def get_graph(state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    return state.export()


@router.put("/graph")
async def put_graph(document: Dict[str, Any], state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    try:
        report = state.load(document)
    except SchemaError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return report.to_dict()


@router.delete("/graph", status_code=204)
async def delete_graph(state: EditorState = Depends(get_state)) -> Response:
    state.clear()
    return Response(status_code=204)


# ── Nodes ─────────────────────────────────────────────────────────────────────

@router.post("/nodes", status_code=201)
async def create_node(body: CreateNodeBody, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    try:
        node = state.create_node(body.category, body.type, body.x, body.y)
    except DefinitionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    result = node.to_dict()
    if body.connectFrom is not None:
        link = state.auto_connect(body.connectFrom.to_ref(), node.id)
        result["link"] = link.to_dict() if link else None
    return result


@router.get("/nodes/{node_id}")
async def get_node(node_id: int, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    return _node_or_404(state, node_id).to_dict()


@router.delete("/nodes/{node_id}")
async def delete_node(node_id: int, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    _node_or_404(state, node_id)
    removed = state.delete_node(node_id)
    return {"removedLinks": [l.id for l in removed]}


@router.put("/nodes/{node_id}/position")
async def set_position(node_id: int, body: PositionBody, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    _node_or_404(state, node_id)
    return state.move_node(node_id, body.x, body.y).to_dict()


@router.put("/nodes/{node_id}/value")
async def set_value(node_id: int, body: ValueBody, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    _node_or_404(state, node_id)
    try:
        return state.set_value(node_id, body.value).to_dict()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


# ── Links ─────────────────────────────────────────────────────────────────────

@router.post("/links", status_code=201)
async def create_link(body: CreateLinkBody, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    link = state.create_link(body.source.to_ref(), body.target.to_ref())
    if link is None:
        raise HTTPException(status_code=409, detail="Connection rejected")
    return link.to_dict()


@router.delete("/links/{link_id}")
async def delete_link(link_id: int, state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    try:
        link = state.delete_link(link_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Link {link_id} not found")
    return link.to_dict()


# ── Compilation ───────────────────────────────────────────────────────────────

@router.post("/generate")
async def generate(state: EditorState = Depends(get_state)) -> Dict[str, Any]:
    try:
        return {"code": state.generate()}
    except GenerationError as exc:
        logger.info(f"Generation failed: {exc}")
        raise HTTPException(status_code=422, detail=str(exc))
