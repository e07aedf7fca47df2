from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NodeType = Literal["standard", "retrieve_variable", "end_call", "agent_transfer", "api_call"]
LayoutDirection = Literal["TB", "LR", "BT", "RL"]
DiagnosticSeverity = Literal["error", "warning", "info"]


class ValidationDiagnosticModel(BaseModel):
    code: str
    severity: DiagnosticSeverity = "error"
    message: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None
    path: Optional[str] = None


class ValidationReportModel(BaseModel):
    valid: bool
    errors: List[str] = Field(default_factory=list)
    diagnostics: List[ValidationDiagnosticModel] = Field(default_factory=list)


class PositionModel(BaseModel):
    x: Union[int, float] = 0
    y: Union[int, float] = 0


class EdgeDataModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    # Left unset when absent; the converter falls back to the edge label.
    condition: Optional[str] = None
    priority: Optional[Union[int, float]] = None


class GraphNodeModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    type: str = "standardNode"
    position: PositionModel = Field(default_factory=PositionModel)
    data: Dict[str, Any] = Field(default_factory=dict)


class GraphEdgeModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = ""
    source: str
    target: str
    label: Optional[str] = None
    data: EdgeDataModel = Field(default_factory=EdgeDataModel)


class WorkflowGraphModel(BaseModel):
    nodes: List[GraphNodeModel] = Field(default_factory=list)
    edges: List[GraphEdgeModel] = Field(default_factory=list)


class ConditionSpecModel(BaseModel):
    kind: str
    display_name: str
    description: str
    has_parameter: bool
    parameter_type: Optional[str] = None
    parameter_label: str = ""
    parameter_placeholder: str = ""
    parameter_suffix: str = ""
    applicable_to: List[str] = Field(default_factory=list)


class ConditionCatalogResponse(BaseModel):
    conditions: List[ConditionSpecModel] = Field(default_factory=list)


class ConditionParseRequest(BaseModel):
    condition: Optional[str] = None


class ConditionParseResponse(BaseModel):
    kind: str
    parameter: str = ""
    recognized: bool
    description: str


class ConditionBuildRequest(BaseModel):
    kind: str
    parameter: str = ""


class ConditionBuildResponse(BaseModel):
    condition: str


class WorkflowGraphRequest(BaseModel):
    config: Dict[str, Any]
    apply_layout: bool = False
    direction: Optional[LayoutDirection] = None


class WorkflowConfigRequest(BaseModel):
    graph: WorkflowGraphModel
    previous_config: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
    persist_positions: bool = False


class WorkflowConfigResponse(BaseModel):
    config: Dict[str, Any]
    dirty: bool
    hash: str


class WorkflowValidateRequest(BaseModel):
    graph: WorkflowGraphModel
    initial_node: Optional[str] = None


class WorkflowReconcileRequest(BaseModel):
    graph: WorkflowGraphModel


class WorkflowReconcileResponse(BaseModel):
    graph: WorkflowGraphModel
    updated_node_ids: List[str] = Field(default_factory=list)


class WorkflowDeployRequest(BaseModel):
    graph: WorkflowGraphModel
    previous_config: Optional[Dict[str, Any]] = None
    settings: Optional[Dict[str, Any]] = None
