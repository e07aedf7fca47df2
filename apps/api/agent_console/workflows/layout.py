"""Node placement for the workflow canvas.

The editor treats placement as an injected pure function with the signature
``layout(nodes, edges, options) -> positioned_nodes``. ``layered_layout`` is
the default implementation; callers may pass any other callable with the same
contract.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import networkx as nx

from agent_console.config import DEFAULT_EDITOR_CONFIG, EditorConfig

LayoutDirection = str
LayoutFunction = Callable[
    [Sequence[Mapping[str, Any]], Sequence[Mapping[str, Any]], "LayoutOptions"],
    List[Dict[str, Any]],
]

VALID_DIRECTIONS = ("TB", "LR", "BT", "RL")
MAX_VISIBLE_TRANSITIONS = 5


@dataclass(frozen=True)
class LayoutOptions:
    direction: LayoutDirection = "TB"
    node_width: float = 340.0
    node_height: float = 180.0
    rank_spacing: float = 350.0
    node_spacing: float = 280.0
    margin: float = 120.0

    @classmethod
    def from_config(
        cls,
        config: Optional[EditorConfig] = None,
        *,
        direction: Optional[str] = None,
    ) -> "LayoutOptions":
        settings = config or DEFAULT_EDITOR_CONFIG
        resolved = str(direction or settings.layout_direction or "TB").upper()
        if resolved not in VALID_DIRECTIONS:
            resolved = "TB"
        return cls(
            direction=resolved,
            rank_spacing=settings.layout_rank_spacing,
            node_spacing=settings.layout_node_spacing,
        )


def node_dimensions(visual_type: Optional[str], data: Optional[Mapping[str, Any]] = None) -> Tuple[float, float]:
    """Width and height of a rendered node box, growing with its transition rows."""
    transitions = list((data or {}).get("transitions") or [])
    count = len(transitions)
    section = 0
    if count:
        section = 24 + 24 * min(count, MAX_VISIBLE_TRANSITIONS)
        if count > MAX_VISIBLE_TRANSITIONS:
            section += 20

    if visual_type == "endCallNode":
        return 220.0, 140.0
    if visual_type == "agentTransferNode":
        return 280.0, 180.0
    if visual_type in {"retrieveVariableNode", "apiCallNode"}:
        return 340.0, float(156 + section)
    return 340.0, float(168 + section)


def layered_layout(
    nodes: Sequence[Mapping[str, Any]],
    edges: Sequence[Mapping[str, Any]],
    options: Optional[LayoutOptions] = None,
) -> List[Dict[str, Any]]:
    opts = options or LayoutOptions()
    if not nodes:
        return []

    node_ids = [str(item.get("id") or "") for item in nodes]
    graph = nx.DiGraph()
    graph.add_nodes_from(node_ids)
    for edge in edges:
        source = str(edge.get("source") or "")
        target = str(edge.get("target") or "")
        if source in graph and target in graph:
            graph.add_edge(source, target)

    ranks = _assign_ranks(node_ids, graph)
    dims = {
        str(item.get("id") or ""): node_dimensions(item.get("type"), item.get("data"))
        for item in nodes
    }

    members: Dict[int, List[str]] = {}
    for node_id in node_ids:
        members.setdefault(ranks[node_id], []).append(node_id)

    horizontal = opts.direction in {"LR", "RL"}
    reverse = opts.direction in {"BT", "RL"}
    max_rank = max(members.keys())

    centers: Dict[str, Tuple[float, float]] = {}
    rank_offset = opts.margin
    for rank in range(max_rank + 1):
        row = members.get(rank, [])
        if not row:
            continue
        depth = max((dims[item][0] if horizontal else dims[item][1]) for item in row)
        breadth_offset = opts.margin
        for node_id in row:
            width, height = dims[node_id]
            breadth = height if horizontal else width
            along = breadth_offset + breadth / 2
            across = rank_offset + depth / 2
            centers[node_id] = (across, along) if horizontal else (along, across)
            breadth_offset += breadth + opts.node_spacing
        rank_offset += depth + opts.rank_spacing

    if reverse:
        extent = rank_offset - opts.rank_spacing + opts.margin
        for node_id, (x, y) in centers.items():
            centers[node_id] = (extent - x, y) if horizontal else (x, extent - y)

    positioned: List[Dict[str, Any]] = []
    for item in nodes:
        node_id = str(item.get("id") or "")
        width, height = dims[node_id]
        cx, cy = centers[node_id]
        placed = copy.deepcopy(dict(item))
        placed["position"] = {"x": cx - width / 2, "y": cy - height / 2}
        positioned.append(placed)
    return positioned


def apply_layout(
    graph: Mapping[str, Any],
    *,
    options: Optional[LayoutOptions] = None,
    layout: Optional[LayoutFunction] = None,
) -> Dict[str, Any]:
    nodes = list(graph.get("nodes") or [])
    edges = list(graph.get("edges") or [])
    placer = layout or layered_layout
    positioned = placer(nodes, edges, options or LayoutOptions())
    positions = {str(item.get("id") or ""): item.get("position") for item in positioned}

    updated_nodes: List[Dict[str, Any]] = []
    for node in nodes:
        position = positions.get(str(node.get("id") or ""))
        if position is None:
            updated_nodes.append(node)
            continue
        updated = dict(node)
        updated["position"] = {"x": float(position["x"]), "y": float(position["y"])}
        updated_nodes.append(updated)
    return {"nodes": updated_nodes, "edges": edges}


def _assign_ranks(node_ids: List[str], graph: nx.DiGraph) -> Dict[str, int]:
    ranks: Dict[str, int] = {}
    next_rank = 0
    for root in node_ids:
        if root in ranks:
            continue
        depths = nx.single_source_shortest_path_length(graph, root)
        for node_id, depth in depths.items():
            if node_id not in ranks:
                ranks[node_id] = next_rank + depth
        next_rank = max(ranks.values()) + 1
    return ranks
