"""Keeps node transition lists and canvas edges in agreement.

Every node in the editor graph carries a cached ``data.transitions`` list for
display, while the edge list is what the canvas manipulates. The two must
agree element for element: for each node, the ``(target, condition,
priority)`` triples of its outgoing edges, in edge order, equal its cached
transitions.

Edits arrive from two directions:

* canvas edits (connect, delete, relabel an edge) change the edge list; the
  affected nodes' cached transitions are then recomputed from edges, and a
  node is only rewritten when the recomputed list differs from its cache;
* panel edits replace one node's transition list wholesale; that node's
  outgoing edges are discarded and rebuilt from the new list.

All functions here are pure: they return a new graph dict and leave the input
untouched. Unchanged nodes are reused as-is, so callers can detect a no-op by
identity.
"""

from __future__ import annotations

import copy
import logging
import random
import string
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from agent_console.config import EditorConfig
from agent_console.workflows.converter import (
    DEFAULT_CONDITION,
    DEFAULT_NODE_TYPE,
    edge_id_for,
    edges_to_transitions,
    to_config,
    to_graph,
    transitions_to_edges,
    visual_type_for,
)

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class ReconcileResult:
    graph: Dict[str, Any]
    updated_node_ids: List[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.updated_node_ids)


def transitions_equal(
    left: Sequence[Mapping[str, Any]],
    right: Sequence[Mapping[str, Any]],
) -> bool:
    if len(left) != len(right):
        return False
    for a, b in zip(left, right):
        if not isinstance(a, Mapping) or not isinstance(b, Mapping):
            return False
        if (
            a.get("target") != b.get("target")
            or a.get("condition") != b.get("condition")
            or a.get("priority") != b.get("priority")
        ):
            return False
    return True


def sync_transitions(
    graph: Mapping[str, Any],
    node_ids: Optional[Iterable[str]] = None,
) -> ReconcileResult:
    """Recompute cached transitions from edges for ``node_ids`` (all nodes if None)."""
    edges = list(graph.get("edges") or [])
    scope: Optional[Set[str]] = set(node_ids) if node_ids is not None else None

    updated: List[str] = []
    nodes: List[Dict[str, Any]] = []
    for node in list(graph.get("nodes") or []):
        node_id = str(node.get("id") or "")
        if scope is not None and node_id not in scope:
            nodes.append(node)
            continue

        data = node.get("data") if isinstance(node.get("data"), Mapping) else {}
        projected = edges_to_transitions(edges, node_id)
        current = data.get("transitions") or []
        if transitions_equal(projected, current):
            nodes.append(node)
            continue

        updated.append(node_id)
        nodes.append(_with_data(node, {**data, "transitions": projected}))

    if not updated:
        return ReconcileResult(graph=_as_graph(graph), updated_node_ids=[])
    return ReconcileResult(graph={"nodes": nodes, "edges": edges}, updated_node_ids=updated)


def connect_nodes(
    graph: Mapping[str, Any],
    source: str,
    target: str,
    *,
    condition: str = DEFAULT_CONDITION,
    priority: Any = 0,
) -> Dict[str, Any]:
    if not source or not target:
        return _as_graph(graph)

    edges = list(graph.get("edges") or [])
    taken = {str(item.get("id") or "") for item in edges}
    edges.append(
        {
            "id": edge_id_for(source, target, len(edges), taken),
            "source": source,
            "target": target,
            "label": condition,
            "data": {"condition": condition, "priority": priority},
        }
    )
    return sync_transitions({"nodes": list(graph.get("nodes") or []), "edges": edges}, [source]).graph


def remove_edges(graph: Mapping[str, Any], edge_ids: Iterable[str]) -> Dict[str, Any]:
    doomed = set(edge_ids)
    edges = list(graph.get("edges") or [])
    kept = [item for item in edges if str(item.get("id") or "") not in doomed]
    if len(kept) == len(edges):
        return _as_graph(graph)
    sources = {str(item.get("source") or "") for item in edges if str(item.get("id") or "") in doomed}
    return sync_transitions({"nodes": list(graph.get("nodes") or []), "edges": kept}, sources).graph


def update_edge(
    graph: Mapping[str, Any],
    edge_id: str,
    *,
    condition: Optional[str] = None,
    priority: Any = None,
) -> Dict[str, Any]:
    edges: List[Dict[str, Any]] = []
    source: Optional[str] = None
    for edge in list(graph.get("edges") or []):
        if str(edge.get("id") or "") != edge_id:
            edges.append(edge)
            continue
        data = dict(edge.get("data") or {})
        updated = dict(edge)
        if condition is not None:
            data["condition"] = condition
            updated["label"] = condition
        if priority is not None:
            data["priority"] = priority
        updated["data"] = data
        edges.append(updated)
        source = str(edge.get("source") or "")

    if source is None:
        logger.debug("Edge %r not found; relabel ignored.", edge_id)
        return _as_graph(graph)
    return sync_transitions({"nodes": list(graph.get("nodes") or []), "edges": edges}, [source]).graph


def replace_transitions(
    graph: Mapping[str, Any],
    node_id: str,
    transitions: Sequence[Mapping[str, Any]],
) -> Dict[str, Any]:
    nodes = list(graph.get("nodes") or [])
    if not any(str(item.get("id") or "") == node_id for item in nodes):
        logger.debug("Node %r not found; transition replace ignored.", node_id)
        return _as_graph(graph)

    fresh = [copy.deepcopy(dict(item)) for item in transitions if isinstance(item, Mapping)]
    others = [item for item in list(graph.get("edges") or []) if str(item.get("source") or "") != node_id]
    taken = {str(item.get("id") or "") for item in others}
    edges = others + transitions_to_edges(node_id, fresh, taken)

    nodes = [
        _with_data(item, {**(item.get("data") or {}), "transitions": fresh})
        if str(item.get("id") or "") == node_id
        else item
        for item in nodes
    ]
    return sync_transitions({"nodes": nodes, "edges": edges}, [node_id]).graph


def update_node_data(
    graph: Mapping[str, Any],
    node_id: str,
    updates: Mapping[str, Any],
) -> Dict[str, Any]:
    changes = {key: value for key, value in dict(updates).items() if key != "id"}
    replacing = "transitions" in changes
    new_transitions = changes.pop("transitions", None)

    nodes: List[Dict[str, Any]] = []
    found = False
    for node in list(graph.get("nodes") or []):
        if str(node.get("id") or "") != node_id:
            nodes.append(node)
            continue
        found = True
        data = {**(node.get("data") or {}), **copy.deepcopy(changes)}
        updated = _with_data(node, data)
        if "type" in changes:
            updated["type"] = visual_type_for(data.get("type"))
        nodes.append(updated)

    if not found:
        logger.debug("Node %r not found; update ignored.", node_id)
        return _as_graph(graph)

    result = {"nodes": nodes, "edges": list(graph.get("edges") or [])}
    if replacing:
        return replace_transitions(result, node_id, list(new_transitions or []))
    return result


def delete_node(graph: Mapping[str, Any], node_id: str) -> Dict[str, Any]:
    nodes = [item for item in list(graph.get("nodes") or []) if str(item.get("id") or "") != node_id]
    edges = list(graph.get("edges") or [])
    kept = [
        item
        for item in edges
        if str(item.get("source") or "") != node_id and str(item.get("target") or "") != node_id
    ]
    affected = {
        str(item.get("source") or "")
        for item in edges
        if str(item.get("target") or "") == node_id
    }
    affected.discard(node_id)
    return sync_transitions({"nodes": nodes, "edges": kept}, affected).graph


def generate_node_id(node_type: str) -> str:
    stamp = int(time.time() * 1000)
    suffix = "".join(random.choice(_ID_ALPHABET) for _ in range(7))
    return f"{node_type}_{stamp}_{suffix}"


def default_node_data(node_id: str, node_type: str) -> Dict[str, Any]:
    if node_type == "standard":
        return {
            "id": node_id,
            "type": "standard",
            "name": "New Standard Node",
            "system_prompt": "You are a helpful AI assistant.",
            "interruptions_enabled": True,
        }
    if node_type == "retrieve_variable":
        return {"id": node_id, "type": "retrieve_variable", "name": "New Variable Node", "variables": []}
    if node_type == "end_call":
        return {"id": node_id, "type": "end_call", "name": "End Call"}
    if node_type == "agent_transfer":
        return {
            "id": node_id,
            "type": "agent_transfer",
            "name": "Transfer to Agent",
            "target_agent_id": "",
            "transfer_context": False,
            "transfer_message": "",
        }
    if node_type == "api_call":
        return {
            "id": node_id,
            "type": "api_call",
            "name": "New API Call",
            "static_text": "",
            "api_call": {
                "method": "GET",
                "url": "",
                "headers": {},
                "timeout_seconds": 30,
                "retry": {
                    "max_retries": 2,
                    "initial_delay_ms": 500,
                    "max_delay_ms": 5000,
                    "backoff_multiplier": 2.0,
                },
                "response_extraction": [],
            },
        }
    return {"id": node_id, "type": DEFAULT_NODE_TYPE, "name": "New Node"}


def add_node(
    graph: Mapping[str, Any],
    node_type: str,
    position: Mapping[str, Any],
    *,
    node_id: Optional[str] = None,
) -> Tuple[Dict[str, Any], str]:
    new_id = node_id or generate_node_id(node_type)
    data = default_node_data(new_id, node_type)
    node = {
        "id": new_id,
        "type": visual_type_for(data["type"]),
        "position": {"x": position.get("x", 0), "y": position.get("y", 0)},
        "data": data,
    }
    nodes = list(graph.get("nodes") or []) + [node]
    return {"nodes": nodes, "edges": list(graph.get("edges") or [])}, new_id


class EditorSession:
    """Mutable editing state for one workflow: graph, selection and undo history."""

    def __init__(self, graph: Mapping[str, Any]) -> None:
        self.graph: Dict[str, Any] = sync_transitions(graph).graph
        self.selected_node_id: Optional[str] = None
        self.selected_edge_id: Optional[str] = None
        self._history: List[Dict[str, Any]] = []

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        settings: Optional[EditorConfig] = None,
    ) -> "EditorSession":
        return cls(to_graph(config, settings=settings))

    def select_node(self, node_id: Optional[str]) -> None:
        self.selected_node_id = node_id
        self.selected_edge_id = None

    def select_edge(self, edge_id: Optional[str]) -> None:
        self.selected_edge_id = edge_id
        self.selected_node_id = None

    def clear_selection(self) -> None:
        self.selected_node_id = None
        self.selected_edge_id = None

    def connect(
        self,
        source: str,
        target: str,
        *,
        condition: str = DEFAULT_CONDITION,
        priority: Any = 0,
    ) -> None:
        self._commit(connect_nodes(self.graph, source, target, condition=condition, priority=priority))

    def delete_edge(self, edge_id: str) -> None:
        self._commit(remove_edges(self.graph, [edge_id]))
        if self.selected_edge_id == edge_id:
            self.selected_edge_id = None

    def relabel_edge(self, edge_id: str, condition: Optional[str] = None, priority: Any = None) -> None:
        self._commit(update_edge(self.graph, edge_id, condition=condition, priority=priority))

    def update_node(self, node_id: str, updates: Mapping[str, Any]) -> None:
        self._commit(update_node_data(self.graph, node_id, updates))

    def set_transitions(self, node_id: str, transitions: Sequence[Mapping[str, Any]]) -> None:
        self._commit(replace_transitions(self.graph, node_id, transitions))

    def add_node(self, node_type: str, position: Mapping[str, Any], *, node_id: Optional[str] = None) -> str:
        graph, new_id = add_node(self.graph, node_type, position, node_id=node_id)
        self._commit(graph)
        return new_id

    def delete_node(self, node_id: str) -> None:
        self._commit(delete_node(self.graph, node_id))
        if self.selected_node_id == node_id:
            self.selected_node_id = None
        edge_ids = {str(item.get("id") or "") for item in self.graph["edges"]}
        if self.selected_edge_id is not None and self.selected_edge_id not in edge_ids:
            self.selected_edge_id = None

    def undo(self) -> bool:
        if not self._history:
            return False
        self.graph = self._history.pop()
        node_ids = {str(item.get("id") or "") for item in self.graph["nodes"]}
        edge_ids = {str(item.get("id") or "") for item in self.graph["edges"]}
        if self.selected_node_id not in node_ids:
            self.selected_node_id = None
        if self.selected_edge_id not in edge_ids:
            self.selected_edge_id = None
        return True

    def to_config(self, previous_config: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> Dict[str, Any]:
        return to_config(self.graph, previous_config, **kwargs)

    def _commit(self, graph: Dict[str, Any]) -> None:
        if graph is self.graph:
            return
        self._history.append(self.graph)
        self.graph = graph


def _with_data(node: Mapping[str, Any], data: Mapping[str, Any]) -> Dict[str, Any]:
    updated = dict(node)
    updated["data"] = dict(data)
    return updated


def _as_graph(graph: Mapping[str, Any]) -> Dict[str, Any]:
    if isinstance(graph, dict) and set(graph.keys()) <= {"nodes", "edges"}:
        return graph
    return {"nodes": list(graph.get("nodes") or []), "edges": list(graph.get("edges") or [])}
