from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from agent_console.config import load_editor_config
from agent_console.workflows import service
from agent_console.workflows.conditions import (
    decode_condition,
    describe_condition,
    encode_condition,
    is_recognized_condition,
)
from agent_console.workflows.schemas import (
    ConditionBuildRequest,
    ConditionBuildResponse,
    ConditionCatalogResponse,
    ConditionParseRequest,
    ConditionParseResponse,
    ConditionSpecModel,
    NodeType,
    ValidationReportModel,
    WorkflowConfigRequest,
    WorkflowConfigResponse,
    WorkflowDeployRequest,
    WorkflowGraphModel,
    WorkflowGraphRequest,
    WorkflowReconcileRequest,
    WorkflowReconcileResponse,
    WorkflowValidateRequest,
)

_MAIN_FILE = Path(__file__).resolve()
_API_DIR = _MAIN_FILE.parents[1]
_REPO_ROOT = _MAIN_FILE.parents[3]

# Load non-committed local env first, then standard .env files.
for _dotenv_path in (
    _REPO_ROOT / ".local.env",
    _API_DIR / ".local.env",
    _REPO_ROOT / ".env",
    _API_DIR / ".env",
):
    if _dotenv_path.exists():
        load_dotenv(dotenv_path=_dotenv_path, override=False)

SETTINGS = load_editor_config()

logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    status: str
    grid_cell: str
    layout_direction: str


app = FastAPI(title="Agent Console Workflow API")

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=SETTINGS.cors_origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def _startup() -> None:
    logging.basicConfig(
        level=getattr(logging, SETTINGS.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Workflow API ready (layout direction %s).", SETTINGS.layout_direction)


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        grid_cell=f"{SETTINGS.grid_cell_width:g}x{SETTINGS.grid_cell_height:g}",
        layout_direction=SETTINGS.layout_direction,
    )


@app.get("/workflow/conditions", response_model=ConditionCatalogResponse)
async def workflow_conditions(node_type: Optional[NodeType] = None) -> ConditionCatalogResponse:
    payload = service.condition_catalog(node_type)
    return ConditionCatalogResponse(conditions=[ConditionSpecModel(**item) for item in payload])


@app.post("/workflow/conditions/parse", response_model=ConditionParseResponse)
async def workflow_condition_parse(request: ConditionParseRequest) -> ConditionParseResponse:
    parsed = decode_condition(request.condition)
    return ConditionParseResponse(
        kind=parsed.kind.value,
        parameter=parsed.parameter,
        recognized=is_recognized_condition(request.condition),
        description=describe_condition(request.condition),
    )


@app.post("/workflow/conditions/build", response_model=ConditionBuildResponse)
async def workflow_condition_build(request: ConditionBuildRequest) -> ConditionBuildResponse:
    return ConditionBuildResponse(condition=encode_condition(request.kind, request.parameter))


@app.post("/workflow/graph", response_model=WorkflowGraphModel)
async def workflow_graph(request: WorkflowGraphRequest) -> WorkflowGraphModel:
    graph = service.load_workflow_graph(
        request.config,
        apply_auto_layout=request.apply_layout,
        direction=request.direction,
        settings=SETTINGS,
    )
    return WorkflowGraphModel.model_validate(graph)


@app.post("/workflow/config", response_model=WorkflowConfigResponse)
async def workflow_config(request: WorkflowConfigRequest) -> WorkflowConfigResponse:
    result = service.compute_dirty_state(
        request.graph.model_dump(),
        request.previous_config,
        settings_edits=request.settings,
        persist_positions=request.persist_positions,
        settings=SETTINGS,
    )
    return WorkflowConfigResponse(**result)


@app.post("/workflow/validate", response_model=ValidationReportModel)
async def workflow_validate(request: WorkflowValidateRequest) -> ValidationReportModel:
    report = service.validate_workflow(request.graph.model_dump(), initial_node=request.initial_node)
    return ValidationReportModel(**report)


@app.post("/workflow/reconcile", response_model=WorkflowReconcileResponse)
async def workflow_reconcile(request: WorkflowReconcileRequest) -> WorkflowReconcileResponse:
    result = service.reconcile_graph(request.graph.model_dump())
    return WorkflowReconcileResponse(
        graph=WorkflowGraphModel.model_validate(result["graph"]),
        updated_node_ids=result["updated_node_ids"],
    )


@app.post("/workflow/deploy")
async def workflow_deploy(request: WorkflowDeployRequest) -> dict:
    try:
        config = service.deploy_workflow(
            request.graph.model_dump(),
            request.previous_config,
            settings_edits=request.settings,
            settings=SETTINGS,
        )
    except service.WorkflowValidationError as exc:
        raise HTTPException(status_code=422, detail=exc.result.to_report()) from exc
    return {"config": config}
