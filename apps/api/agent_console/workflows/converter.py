"""Conversion between the persisted workflow config and the editor graph.

The config document is what the call runtime reads: a ``workflow`` section
with ``initial_node``, an ordered ``nodes`` list (each node owning its
``transitions``) and workflow-level settings this module never interprets.
The graph is what the canvas edits: positioned nodes plus one directed edge
per transition.

Loading (``to_graph``) copies node fields verbatim. Saving (``to_config``)
treats the edge list as the source of truth for transitions and emits only the
fields that belong to each node type, so scratch state from the editor never
reaches the persisted document.
"""

from __future__ import annotations

import copy
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set

from agent_console.config import DEFAULT_EDITOR_CONFIG, EditorConfig

logger = logging.getLogger(__name__)

DEFAULT_NODE_TYPE = "standard"
DEFAULT_CONDITION = "always"

VISUAL_NODE_TYPES: Dict[str, str] = {
    "standard": "standardNode",
    "retrieve_variable": "retrieveVariableNode",
    "end_call": "endCallNode",
    "agent_transfer": "agentTransferNode",
    "api_call": "apiCallNode",
}

WORKFLOW_SETTING_KEYS = (
    "global_prompt",
    "history_window",
    "max_transitions",
    "interruption_settings",
    "recording",
    "llm",
    "tts",
    "global_intents",
    "global_intent_config",
    "post_call_analysis",
)
_STRUCTURAL_KEYS = ("initial_node", "nodes")

MAX_SUMMARY_ROWS = 5
SUMMARY_CONDITION_WIDTH = 28
SUMMARY_TARGET_WIDTH = 16


def visual_type_for(node_type: Optional[str]) -> str:
    return VISUAL_NODE_TYPES.get(str(node_type or ""), VISUAL_NODE_TYPES[DEFAULT_NODE_TYPE])


def workflow_section(config: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    if not isinstance(config, Mapping):
        return {}
    section = config.get("workflow")
    if isinstance(section, Mapping):
        return section
    return config


def grid_position(
    index: int,
    total: int,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, float]:
    cfg = settings or DEFAULT_EDITOR_CONFIG
    columns = max(1, math.ceil(math.sqrt(max(total, 1))))
    row, col = divmod(index, columns)
    return {
        "x": col * cfg.grid_cell_width + cfg.grid_origin,
        "y": row * cfg.grid_cell_height + cfg.grid_origin,
    }


def edge_id_for(source: str, target: str, ordinal: int, taken: Optional[Set[str]] = None) -> str:
    edge_id = f"{source}-{target}-{ordinal}"
    if taken is None:
        return edge_id
    while edge_id in taken:
        ordinal += 1
        edge_id = f"{source}-{target}-{ordinal}"
    taken.add(edge_id)
    return edge_id


def transition_to_edge(
    source: str,
    transition: Mapping[str, Any],
    ordinal: int,
    taken: Optional[Set[str]] = None,
) -> Dict[str, Any]:
    target = str(transition.get("target") or "")
    condition = str(transition.get("condition") or DEFAULT_CONDITION)
    priority = transition.get("priority") or 0
    return {
        "id": edge_id_for(source, target, ordinal, taken),
        "source": source,
        "target": target,
        "label": condition,
        "data": {"condition": condition, "priority": priority},
    }


def transitions_to_edges(
    source: str,
    transitions: Iterable[Mapping[str, Any]],
    taken: Optional[Set[str]] = None,
) -> List[Dict[str, Any]]:
    edges: List[Dict[str, Any]] = []
    for ordinal, transition in enumerate(transitions):
        if not isinstance(transition, Mapping):
            continue
        edges.append(transition_to_edge(source, transition, ordinal, taken))
    return edges


def edge_to_transition(edge: Mapping[str, Any]) -> Dict[str, Any]:
    data = edge.get("data") if isinstance(edge.get("data"), Mapping) else {}
    condition = data.get("condition") or edge.get("label") or DEFAULT_CONDITION
    return {
        "condition": str(condition),
        "target": str(edge.get("target") or ""),
        "priority": data.get("priority") or 0,
    }


def edges_to_transitions(edges: Iterable[Mapping[str, Any]], node_id: str) -> List[Dict[str, Any]]:
    return [
        edge_to_transition(edge)
        for edge in edges
        if str(edge.get("source") or "") == node_id
    ]


def to_graph(
    config: Mapping[str, Any],
    *,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    section = workflow_section(config)
    raw_nodes = [item for item in list(section.get("nodes") or []) if isinstance(item, Mapping)]

    nodes: List[Dict[str, Any]] = []
    edges: List[Dict[str, Any]] = []
    taken: Set[str] = set()
    total = len(raw_nodes)

    for index, raw in enumerate(raw_nodes):
        node_id = str(raw.get("id") or "")
        node_type = raw.get("type") or DEFAULT_NODE_TYPE
        if node_type not in VISUAL_NODE_TYPES:
            logger.debug("Node %r has unknown type %r; rendering as standard.", node_id, node_type)

        data = copy.deepcopy(dict(raw))
        data["type"] = node_type

        nodes.append(
            {
                "id": node_id,
                "type": visual_type_for(node_type),
                "position": _stored_position(raw) or grid_position(index, total, settings),
                "data": data,
            }
        )

        transitions = raw.get("transitions")
        if isinstance(transitions, list):
            edges.extend(transitions_to_edges(node_id, transitions, taken))

    return {"nodes": nodes, "edges": edges}


def to_config(
    graph: Mapping[str, Any],
    previous_config: Optional[Mapping[str, Any]] = None,
    *,
    settings_edits: Optional[Mapping[str, Any]] = None,
    persist_positions: bool = False,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    edges = [item for item in list(graph.get("edges") or []) if isinstance(item, Mapping)]
    config_nodes: List[Dict[str, Any]] = []

    for node in list(graph.get("nodes") or []):
        if not isinstance(node, Mapping):
            continue
        data = node.get("data") if isinstance(node.get("data"), Mapping) else {}
        node_id = str(node.get("id") or data.get("id") or "")
        transitions = edges_to_transitions(edges, node_id)
        emitted = emit_config_node(data, node_id, transitions)
        _attach_metadata(emitted, node, data, persist_positions)
        config_nodes.append(emitted)

    previous_section = workflow_section(previous_config)
    workflow = resolve_workflow_settings(
        previous_section,
        config_nodes,
        edits=settings_edits,
        settings=settings,
    )
    workflow["nodes"] = config_nodes

    if isinstance(previous_config, Mapping) and isinstance(previous_config.get("workflow"), Mapping):
        document = copy.deepcopy(dict(previous_config))
        document["workflow"] = workflow
        return document
    if isinstance(previous_config, Mapping) and previous_config:
        return workflow
    return {"workflow": workflow}


def resolve_workflow_settings(
    previous_workflow: Optional[Mapping[str, Any]],
    nodes: Sequence[Mapping[str, Any]],
    *,
    edits: Optional[Mapping[str, Any]] = None,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    """Assemble the workflow section minus ``nodes``.

    Precedence for every key is: current edit, then the previously persisted
    workflow, then a literal default. Only ``initial_node`` has a default;
    every other setting is copied through when present and left out when not.
    An edit whose value is ``None`` removes the setting.
    """
    cfg = settings or DEFAULT_EDITOR_CONFIG
    previous = previous_workflow if isinstance(previous_workflow, Mapping) else {}
    changes = dict(edits or {})

    initial_node = (
        changes.pop("initial_node", None)
        or previous.get("initial_node")
        or (str(nodes[0].get("id") or "") if nodes else "")
        or cfg.default_initial_node
    )

    resolved: Dict[str, Any] = {"initial_node": initial_node}
    # Known settings first in a stable order, then anything newer runtimes added.
    ordered = [key for key in WORKFLOW_SETTING_KEYS if key in previous]
    ordered += [key for key in previous if key not in WORKFLOW_SETTING_KEYS]
    for key in ordered:
        if key in _STRUCTURAL_KEYS:
            continue
        resolved[key] = copy.deepcopy(previous[key])

    changes.pop("nodes", None)
    for key, value in changes.items():
        if value is None:
            resolved.pop(key, None)
        else:
            resolved[key] = copy.deepcopy(value)
    return resolved


def emit_config_node(
    data: Mapping[str, Any],
    node_id: str,
    transitions: List[Dict[str, Any]],
) -> Dict[str, Any]:
    node_type = data.get("type") or DEFAULT_NODE_TYPE
    emitter = _NODE_EMITTERS.get(str(node_type), _emit_unknown)
    out: Dict[str, Any] = {"id": node_id, "type": node_type}
    if data.get("name") is not None:
        out["name"] = data.get("name")
    emitter(out, data, transitions)
    return out


def node_names(graph: Mapping[str, Any]) -> Dict[str, str]:
    names: Dict[str, str] = {}
    for node in list(graph.get("nodes") or []):
        node_id = str(node.get("id") or "")
        data = node.get("data") if isinstance(node.get("data"), Mapping) else {}
        names[node_id] = str(data.get("name") or node_id)
    return names


def summarize_transitions(
    transitions: Sequence[Mapping[str, Any]],
    names: Mapping[str, str],
    *,
    expanded: bool = False,
) -> Dict[str, Any]:
    items = list(transitions or [])
    visible = items if expanded else items[:MAX_SUMMARY_ROWS]
    rows = []
    for item in visible:
        condition = str(item.get("condition") or "")
        target = str(item.get("target") or "")
        rows.append(
            {
                "condition": _truncate(condition, SUMMARY_CONDITION_WIDTH),
                "target": target,
                "target_name": _truncate(str(names.get(target) or target), SUMMARY_TARGET_WIDTH),
            }
        )
    return {"rows": rows, "hidden_count": max(0, len(items) - len(visible))}


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[:width] + "..."


def _stored_position(raw: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    metadata = raw.get("_metadata")
    if not isinstance(metadata, Mapping):
        return None
    position = metadata.get("position")
    if not isinstance(position, Mapping):
        return None
    return copy.deepcopy(dict(position))


def _attach_metadata(
    out: Dict[str, Any],
    node: Mapping[str, Any],
    data: Mapping[str, Any],
    persist_positions: bool,
) -> None:
    metadata = data.get("_metadata")
    if persist_positions:
        merged = copy.deepcopy(dict(metadata)) if isinstance(metadata, Mapping) else {}
        position = node.get("position") if isinstance(node.get("position"), Mapping) else {}
        merged["position"] = {"x": position.get("x", 0), "y": position.get("y", 0)}
        out["_metadata"] = merged
    elif metadata is not None:
        out["_metadata"] = copy.deepcopy(metadata)


# Presence rules mirror what the runtime accepts: prompt-like strings only
# when non-empty, structured blocks whenever set.
def _truthy(value: Any) -> bool:
    return bool(value)


def _not_none(value: Any) -> bool:
    return value is not None


def _copy_fields(
    out: Dict[str, Any],
    data: Mapping[str, Any],
    rules: Sequence[tuple],
) -> None:
    for key, keep in rules:
        if key not in data:
            continue
        value = data.get(key)
        if keep(value):
            out[key] = copy.deepcopy(value)


def _put_transitions(out: Dict[str, Any], transitions: List[Dict[str, Any]]) -> None:
    if transitions:
        out["transitions"] = copy.deepcopy(transitions)


def _entry_actions_only(out: Dict[str, Any], data: Mapping[str, Any]) -> None:
    actions = data.get("actions")
    if isinstance(actions, Mapping) and actions.get("on_entry"):
        out["actions"] = {"on_entry": list(actions["on_entry"])}


def _emit_standard(out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]) -> None:
    _copy_fields(
        out,
        data,
        (
            ("system_prompt", _truthy),
            ("static_text", _truthy),
            ("interruptions_enabled", _not_none),
        ),
    )
    _put_transitions(out, transitions)
    _copy_fields(
        out,
        data,
        (
            ("actions", _not_none),
            ("rag", _not_none),
            ("llm_override", _not_none),
            ("intents", _truthy),
            ("intent_config", _not_none),
        ),
    )


def _emit_retrieve_variable(
    out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]
) -> None:
    _copy_fields(
        out,
        data,
        (
            ("variables", _not_none),
            ("variable_name", _truthy),
            ("extraction_prompt", _truthy),
            ("default_value", lambda value: True),
            ("interruptions_enabled", _not_none),
        ),
    )
    _put_transitions(out, transitions)
    _copy_fields(out, data, (("actions", _not_none),))


def _emit_end_call(out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]) -> None:
    # Terminal nodes carry no behaviour; stray transitions are dropped.
    pass


def _emit_agent_transfer(
    out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]
) -> None:
    _copy_fields(
        out,
        data,
        (
            ("target_agent_id", _not_none),
            ("transfer_context", _truthy),
            ("transfer_message", _truthy),
        ),
    )
    _entry_actions_only(out, data)


def _emit_api_call(out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]) -> None:
    _copy_fields(
        out,
        data,
        (
            ("static_text", _truthy),
            ("api_call", _not_none),
            ("interruptions_enabled", _not_none),
        ),
    )
    _put_transitions(out, transitions)
    _entry_actions_only(out, data)


def _emit_unknown(out: Dict[str, Any], data: Mapping[str, Any], transitions: List[Dict[str, Any]]) -> None:
    for key, value in data.items():
        if key in {"id", "type", "name", "transitions", "_metadata"}:
            continue
        out[key] = copy.deepcopy(value)
    _put_transitions(out, transitions)


_NODE_EMITTERS: Dict[str, Callable[[Dict[str, Any], Mapping[str, Any], List[Dict[str, Any]]], None]] = {
    "standard": _emit_standard,
    "retrieve_variable": _emit_retrieve_variable,
    "end_call": _emit_end_call,
    "agent_transfer": _emit_agent_transfer,
    "api_call": _emit_api_call,
}
