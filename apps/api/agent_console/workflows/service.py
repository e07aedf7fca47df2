from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from agent_console.config import EditorConfig
from agent_console.workflows.conditions import conditions_for_node_type
from agent_console.workflows.converter import to_config, to_graph, workflow_section
from agent_console.workflows.layout import LayoutFunction, LayoutOptions, apply_layout
from agent_console.workflows.reconciler import sync_transitions
from agent_console.workflows.validation import ValidationResult, validate_workflow_graph

logger = logging.getLogger(__name__)


class WorkflowValidationError(ValueError):
    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        super().__init__(
            f"Workflow has {len(result.errors)} validation error(s) and cannot be deployed."
        )


def load_workflow_graph(
    config: Mapping[str, Any],
    *,
    apply_auto_layout: bool = False,
    direction: Optional[str] = None,
    layout: Optional[LayoutFunction] = None,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    graph = to_graph(config, settings=settings)
    if apply_auto_layout:
        options = LayoutOptions.from_config(settings, direction=direction)
        graph = apply_layout(graph, options=options, layout=layout)
    return sync_transitions(graph).graph


def canonical_hash(payload: Mapping[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def compute_dirty_state(
    graph: Mapping[str, Any],
    initial_config: Optional[Mapping[str, Any]],
    *,
    settings_edits: Optional[Mapping[str, Any]] = None,
    persist_positions: bool = False,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    current = to_config(
        graph,
        initial_config,
        settings_edits=settings_edits,
        persist_positions=persist_positions,
        settings=settings,
    )
    current_hash = canonical_hash(current)
    if not initial_config:
        return {"config": current, "dirty": True, "hash": current_hash}

    baseline = to_config(
        to_graph(initial_config, settings=settings),
        initial_config,
        persist_positions=persist_positions,
        settings=settings,
    )
    return {
        "config": current,
        "dirty": current_hash != canonical_hash(baseline),
        "hash": current_hash,
    }


def validate_workflow(
    graph: Mapping[str, Any],
    *,
    initial_node: Optional[str] = None,
) -> Dict[str, Any]:
    return validate_workflow_graph(graph, initial_node=initial_node).to_report()


def deploy_workflow(
    graph: Mapping[str, Any],
    previous_config: Optional[Mapping[str, Any]] = None,
    *,
    settings_edits: Optional[Mapping[str, Any]] = None,
    settings: Optional[EditorConfig] = None,
) -> Dict[str, Any]:
    config = to_config(graph, previous_config, settings_edits=settings_edits, settings=settings)
    initial_node = workflow_section(config).get("initial_node")
    result = validate_workflow_graph(graph, initial_node=initial_node)
    if not result.valid:
        logger.info("Deploy rejected: %s", "; ".join(result.errors))
        raise WorkflowValidationError(result)
    logger.info("Deploy accepted for workflow starting at %r.", initial_node)
    return config


def reconcile_graph(graph: Mapping[str, Any]) -> Dict[str, Any]:
    result = sync_transitions(graph)
    if result.changed:
        logger.debug("Reconciled transitions for nodes: %s", ", ".join(result.updated_node_ids))
    return {"graph": result.graph, "updated_node_ids": list(result.updated_node_ids)}


def condition_catalog(node_type: Optional[str] = None) -> List[Dict[str, Any]]:
    return [item.as_dict() for item in conditions_for_node_type(node_type)]
