from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from agent_console.workflows.converter import DEFAULT_NODE_TYPE, to_graph, workflow_section
from agent_console.workflows.schemas import ValidationDiagnosticModel

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    diagnostics: List[ValidationDiagnosticModel] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not any(item.severity == "error" for item in self.diagnostics)

    @property
    def errors(self) -> List[str]:
        return [item.message for item in self.diagnostics if item.severity == "error"]

    def to_report(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": self.errors,
            "diagnostics": [item.model_dump() for item in self.diagnostics],
        }


def validate_workflow_graph(
    graph: Mapping[str, Any],
    *,
    initial_node: Optional[str] = None,
) -> ValidationResult:
    """Report every structural problem in an editor graph.

    All checks run; nothing short-circuits. Condition strings are not checked
    (they always decode), and neither is whether each node can reach an
    ``end_call`` node along some path.
    """
    diagnostics: List[ValidationDiagnosticModel] = []
    nodes = [item for item in list(graph.get("nodes") or []) if isinstance(item, Mapping)]
    edges = [item for item in list(graph.get("edges") or []) if isinstance(item, Mapping)]

    node_ids = [str(item.get("id") or "") for item in nodes]
    _check_node_ids(node_ids, diagnostics)
    known_ids = set(node_ids)

    for edge in edges:
        edge_id = str(edge.get("id") or "")
        source = str(edge.get("source") or "")
        target = str(edge.get("target") or "")
        if source not in known_ids:
            diagnostics.append(
                ValidationDiagnosticModel(
                    code="EDGE_NODE_MISSING",
                    message=f'Edge source "{source}" not found',
                    edge_id=edge_id,
                    path="edges.source",
                )
            )
        if target not in known_ids:
            diagnostics.append(
                ValidationDiagnosticModel(
                    code="EDGE_NODE_MISSING",
                    message=f'Edge target "{target}" not found',
                    edge_id=edge_id,
                    path="edges.target",
                )
            )

    if not any(_node_type(item) == "end_call" for item in nodes):
        diagnostics.append(
            ValidationDiagnosticModel(
                code="MISSING_END_CALL_NODE",
                message="Workflow has no terminal state: at least one end_call node is required",
            )
        )

    if initial_node is not None and initial_node not in known_ids:
        diagnostics.append(
            ValidationDiagnosticModel(
                code="INITIAL_NODE_MISSING",
                message=f'Initial node "{initial_node}" does not exist in the workflow',
                path="initial_node",
            )
        )

    for node in nodes:
        node_id = str(node.get("id") or "")
        data = node.get("data") if isinstance(node.get("data"), Mapping) else {}
        node_type = _node_type(node)

        if node_type == "standard":
            has_prompt = bool(data.get("system_prompt"))
            has_static = bool(data.get("static_text"))
            if not has_prompt and not has_static:
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="STANDARD_CONTENT_INVALID",
                        message=f'Node "{node_id}" must have either system_prompt or static_text',
                        node_id=node_id,
                    )
                )
            elif has_prompt and has_static:
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="STANDARD_CONTENT_INVALID",
                        message=f'Node "{node_id}" cannot have both system_prompt and static_text',
                        node_id=node_id,
                    )
                )

        elif node_type == "retrieve_variable":
            variables = data.get("variables")
            has_batch = isinstance(variables, list) and len(variables) > 0
            has_legacy = bool(data.get("variable_name")) and bool(data.get("extraction_prompt"))
            if not has_batch and not has_legacy:
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="RETRIEVE_VARIABLE_INVALID",
                        message=(
                            f'Node "{node_id}" must have either variables array '
                            "or variable_name + extraction_prompt"
                        ),
                        node_id=node_id,
                    )
                )
            elif has_batch and has_legacy:
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="RETRIEVE_VARIABLE_INVALID",
                        message=(
                            f'Node "{node_id}" cannot use both a variables array '
                            "and variable_name + extraction_prompt"
                        ),
                        node_id=node_id,
                    )
                )

        elif node_type == "agent_transfer":
            if not str(data.get("target_agent_id") or "").strip():
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="AGENT_TRANSFER_INVALID",
                        message=f'Agent transfer node "{node_id}" must have a target agent selected',
                        node_id=node_id,
                    )
                )

    result = ValidationResult(diagnostics=diagnostics)
    logger.info(
        "Validated workflow graph: %d nodes, %d edges, %d errors.",
        len(nodes),
        len(edges),
        len(result.errors),
    )
    return result


def validate_workflow_config(config: Mapping[str, Any]) -> ValidationResult:
    section = workflow_section(config)
    initial_node = section.get("initial_node")
    return validate_workflow_graph(
        to_graph(config),
        initial_node=str(initial_node) if initial_node is not None else None,
    )


def _check_node_ids(node_ids: List[str], diagnostics: List[ValidationDiagnosticModel]) -> None:
    counts = Counter(node_ids)
    reported = set()
    for node_id in node_ids:
        if not node_id:
            if "" not in reported:
                diagnostics.append(
                    ValidationDiagnosticModel(
                        code="SCHEMA_INVALID",
                        message="Node id is required",
                        path="nodes.id",
                    )
                )
                reported.add("")
            continue
        if counts[node_id] > 1 and node_id not in reported:
            diagnostics.append(
                ValidationDiagnosticModel(
                    code="DUPLICATE_NODE_ID",
                    message=f'Duplicate node id "{node_id}"',
                    node_id=node_id,
                )
            )
            reported.add(node_id)


def _node_type(node: Mapping[str, Any]) -> str:
    data = node.get("data") if isinstance(node.get("data"), Mapping) else {}
    return str(data.get("type") or DEFAULT_NODE_TYPE)
