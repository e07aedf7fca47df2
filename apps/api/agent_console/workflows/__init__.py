from agent_console.workflows.conditions import (
    ConditionKind,
    ParsedCondition,
    decode_condition,
    encode_condition,
)
from agent_console.workflows.schemas import (
    ValidationDiagnosticModel,
    ValidationReportModel,
    WorkflowGraphModel,
)


def to_graph(*args, **kwargs):
    from agent_console.workflows.converter import to_graph as _to_graph

    return _to_graph(*args, **kwargs)


def to_config(*args, **kwargs):
    from agent_console.workflows.converter import to_config as _to_config

    return _to_config(*args, **kwargs)


def validate_workflow_graph(*args, **kwargs):
    from agent_console.workflows.validation import (
        validate_workflow_graph as _validate_workflow_graph,
    )

    return _validate_workflow_graph(*args, **kwargs)


def deploy_workflow(*args, **kwargs):
    from agent_console.workflows.service import deploy_workflow as _deploy_workflow

    return _deploy_workflow(*args, **kwargs)


__all__ = [
    "ConditionKind",
    "ParsedCondition",
    "ValidationDiagnosticModel",
    "ValidationReportModel",
    "WorkflowGraphModel",
    "decode_condition",
    "deploy_workflow",
    "encode_condition",
    "to_config",
    "to_graph",
    "validate_workflow_graph",
]
