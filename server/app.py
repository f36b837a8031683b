"""FastAPI surface for the field operations dashboard."""
from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from fieldops.errors import (
    AIServiceError,
    ConfigurationError,
    FieldOpsError,
    InvalidRecordError,
    RemoteConnectionError,
    StoreError,
    UnsupportedOperationError,
)
from fieldops.models.common import Division, new_id
from fieldops.models.partner import Partner
from fieldops.models.reference import SOP, Contact
from fieldops.models.task import Task, TaskCategory, TaskPriority
from fieldops.models.visit import VisitNote
from fieldops.db.sync_log_repo import SyncLogRepository
from fieldops.services.ai_skills import autofill_or_keep
from fieldops.services.chat_engine import ChatSession
from fieldops.services.dashboard_service import dashboard_stats, events_for_day, priority_breakdown
from fieldops.services.issue_service import new_issue, with_sla
from fieldops.services.sync_coordinator import SyncOutcome
from fieldops.services.task_service import new_task
from fieldops.services.visit_service import VisitTab, new_visit
from fieldops.services.workspace import Workspace, build_workspace
from fieldops.utils.log import setup_logging

logger = logging.getLogger(__name__)

_ws: Optional[Workspace] = None
_chat: Optional[ChatSession] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the workspace on startup."""
    global _ws, _chat
    setup_logging()
    _ws = build_workspace()
    _chat = _ws.chat_session()
    logger.info("Server started - backend: %s", _ws.coordinator.backend.name)
    yield
    logger.info("Server shutting down")
    _ws.db.close()
    _ws = None
    _chat = None


app = FastAPI(
    title="FieldOps API",
    description="Tasks, SLA-tracked issues, partner visits and AI assist for field operations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


_STATUS_FOR_ERROR: list[tuple[type[FieldOpsError], int]] = [
    (ConfigurationError, 503),
    (InvalidRecordError, 422),
    (UnsupportedOperationError, 405),
    (RemoteConnectionError, 502),
    (StoreError, 502),
    (AIServiceError, 502),
]


@app.exception_handler(FieldOpsError)
async def fieldops_error_handler(request: Request, exc: FieldOpsError):
    status = next((code for cls, code in _STATUS_FOR_ERROR if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content=exc.to_dict())


def _workspace() -> Workspace:
    if _ws is None:
        raise HTTPException(status_code=503, detail="Workspace not initialized")
    return _ws


def _saved(outcome: SyncOutcome, record: Any = None) -> JSONResponse:
    """Failed writes answer 502 so the client can tell them apart from success."""
    body: dict[str, Any] = {"outcome": outcome.to_dict()}
    if record is not None:
        body["record"] = record.to_dict()
    return JSONResponse(status_code=200 if outcome.ok else 502, content=body)


def _missing(what: str, record_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"{what} {record_id} not found")


# Request Models
class TaskCreate(BaseModel):
    title: str
    description: str = ""
    deadline: Optional[str] = None
    category: TaskCategory = TaskCategory.TODAY
    priority: Optional[TaskPriority] = None
    division: Division = Division.OPS
    notes: str = ""


class IssueCreate(BaseModel):
    awb: str
    partner_name: str = ""
    issue_type: str = ""
    opcode: str = ""
    sop_related: str = ""
    chronology: str = ""
    division: Division = Division.OPS
    screenshot_url: Optional[str] = None


class EscalationCreate(BaseModel):
    actor: str
    action: str
    note: str = ""


class VisitCreate(BaseModel):
    partner_name: str
    visit_date_plan: str = ""
    nia: str = ""
    google_maps_link: str = ""
    coordinates: str = ""
    orders_last_month: float = 0
    findings: str = ""
    operational_issues: str = ""
    suggestions: str = ""


class RescheduleRequest(BaseModel):
    new_date: str


class ConnectRequest(BaseModel):
    credentials: Optional[dict[str, Any]] = None


class TextRequest(BaseModel):
    text: str


class AutofillRequest(BaseModel):
    text: str
    form: dict[str, Any] = Field(default_factory=dict)


class PriorityRequest(BaseModel):
    title: str
    description: str = ""
    division: Division = Division.OPS


class ChatRequest(BaseModel):
    message: str
    apply_action: bool = False


# API Routes
@app.get("/api/status")
def get_status():
    ws = _workspace()
    sync = ws.coordinator
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": sync.backend.name,
        "remote": sync.is_remote,
        "counts": {
            "tasks": len(sync.tasks),
            "issues": len(sync.issues),
            "visits": len(sync.visits),
        },
    }


# -- sync ----------------------------------------------------------------------

@app.post("/api/sync/connect")
def connect_remote(request: ConnectRequest):
    outcome = _workspace().coordinator.connect(request.credentials)
    return outcome.to_dict()


@app.post("/api/sync/reload")
def reload_all():
    outcome = _workspace().coordinator.load()
    return JSONResponse(status_code=200 if outcome.ok else 502, content=outcome.to_dict())


@app.get("/api/sync/log")
def sync_log(limit: int = 20):
    return {"entries": SyncLogRepository(_workspace().db).recent(limit)}


# -- tasks ---------------------------------------------------------------------

@app.get("/api/tasks")
def list_tasks(category: Optional[TaskCategory] = None):
    svc = _workspace().tasks
    tasks = svc.in_category(category) if category else svc.list()
    return {"count": len(tasks), "tasks": [t.to_dict() for t in tasks]}


@app.post("/api/tasks")
def create_task(request: TaskCreate):
    task = new_task(**request.model_dump())
    return _saved(_workspace().tasks.save(task), task)


@app.put("/api/tasks/{task_id}")
def update_task(task_id: str, body: dict[str, Any]):
    task = Task.from_dict({**body, "id": task_id})
    return _saved(_workspace().tasks.save(task), task)


@app.post("/api/tasks/{task_id}/cycle")
def cycle_task(task_id: str):
    svc = _workspace().tasks
    outcome = svc.toggle_status(task_id)
    if outcome is None:
        raise _missing("Task", task_id)
    return _saved(outcome, svc.get(task_id))


@app.delete("/api/tasks/{task_id}")
def delete_task(task_id: str):
    return _saved(_workspace().tasks.delete(task_id))


# -- issues --------------------------------------------------------------------

@app.get("/api/issues")
def list_issues():
    board = _workspace().issues.board()
    return {"count": len(board), "issues": board}


@app.get("/api/issues/overdue")
def list_overdue_issues():
    overdue = _workspace().issues.overdue()
    return {"count": len(overdue), "issues": [with_sla(i) for i in overdue]}


@app.post("/api/issues")
def create_issue(request: IssueCreate):
    issue = new_issue(**request.model_dump())
    return _saved(_workspace().issues.save(issue), issue)


@app.put("/api/issues/{issue_id}")
def update_issue(issue_id: str, body: dict[str, Any]):
    issue, outcome = _workspace().issues.update(issue_id, body)
    return _saved(outcome, issue)


@app.post("/api/issues/{issue_id}/escalations")
def escalate_issue(issue_id: str, request: EscalationCreate):
    svc = _workspace().issues
    outcome = svc.escalate(issue_id, request.actor, request.action, request.note)
    if outcome is None:
        raise _missing("Issue", issue_id)
    return _saved(outcome, svc.get(issue_id))


@app.post("/api/issues/{issue_id}/resolve")
def resolve_issue(issue_id: str):
    svc = _workspace().issues
    outcome = svc.resolve(issue_id)
    if outcome is None:
        raise _missing("Issue", issue_id)
    return _saved(outcome, svc.get(issue_id))


@app.delete("/api/issues/{issue_id}")
def delete_issue(issue_id: str):
    return _saved(_workspace().issues.delete(issue_id))


# -- visits --------------------------------------------------------------------

@app.get("/api/visits")
def list_visits(tab: VisitTab = VisitTab.PLANNED, date: Optional[str] = None):
    visits = _workspace().visits.view(tab, date)
    return {"count": len(visits), "visits": [v.to_dict() for v in visits]}


@app.post("/api/visits")
def create_visit(request: VisitCreate):
    visit = new_visit(**request.model_dump())
    return _saved(_workspace().visits.save(visit), visit)


@app.put("/api/visits/{visit_id}")
def update_visit(visit_id: str, body: dict[str, Any]):
    visit = VisitNote.from_dict({**body, "id": visit_id})
    return _saved(_workspace().visits.save(visit), visit)


@app.post("/api/visits/{visit_id}/done")
def complete_visit(visit_id: str):
    svc = _workspace().visits
    outcome = svc.complete(visit_id)
    if outcome is None:
        raise _missing("Visit", visit_id)
    return _saved(outcome, svc.get(visit_id))


@app.post("/api/visits/{visit_id}/reschedule")
def reschedule_visit(visit_id: str, request: RescheduleRequest):
    svc = _workspace().visits
    outcome = svc.reschedule(visit_id, request.new_date)
    if outcome is None:
        raise _missing("Visit", visit_id)
    return _saved(outcome, svc.get(visit_id))


@app.delete("/api/visits/{visit_id}")
def delete_visit(visit_id: str):
    return _saved(_workspace().visits.delete(visit_id))


# -- partners ------------------------------------------------------------------

@app.get("/api/partners")
def list_partners():
    partners = _workspace().partners.list()
    return {"count": len(partners), "partners": [p.to_dict() for p in partners]}


@app.get("/api/partners/map")
def partner_map():
    return {"points": _workspace().partners.map_points()}


@app.put("/api/partners/{partner_id}")
def save_partner(partner_id: str, body: dict[str, Any]):
    partner = Partner.from_dict({**body, "id": partner_id})
    if not _workspace().partners.save(partner):
        raise HTTPException(status_code=500, detail="Partner could not be saved")
    return partner.to_dict()


@app.delete("/api/partners/{partner_id}")
def delete_partner(partner_id: str):
    if not _workspace().partners.delete(partner_id):
        raise HTTPException(status_code=500, detail="Partner could not be deleted")
    return {"deleted": partner_id}


# -- knowledge base ------------------------------------------------------------

@app.get("/api/sops")
def list_sops(q: str = ""):
    sops = _workspace().knowledge.search_sops(q)
    return {"count": len(sops), "sops": [s.to_dict() for s in sops]}


@app.post("/api/sops")
def save_sop(body: dict[str, Any]):
    sop = SOP.from_dict({"id": new_id(), **body})
    if not _workspace().knowledge.save_sop(sop):
        raise HTTPException(status_code=500, detail="SOP could not be saved")
    return sop.to_dict()


@app.get("/api/contacts")
def list_contacts(q: str = ""):
    contacts = _workspace().knowledge.search_contacts(q)
    return {"count": len(contacts), "contacts": [c.to_dict() for c in contacts]}


@app.post("/api/contacts")
def save_contact(body: dict[str, Any]):
    contact = Contact.from_dict({"id": new_id(), **body})
    if not _workspace().knowledge.save_contact(contact):
        raise HTTPException(status_code=500, detail="Contact could not be saved")
    return contact.to_dict()


# -- dashboard -----------------------------------------------------------------

@app.get("/api/dashboard")
def dashboard():
    sync = _workspace().coordinator
    return {
        "stats": dashboard_stats(sync.tasks, sync.issues, sync.visits).to_dict(),
        "priorities": priority_breakdown(sync.tasks),
        "partner_health": _workspace().partners.health_counts(),
    }


@app.get("/api/calendar/{day}")
def calendar_day(day: str):
    sync = _workspace().coordinator
    return events_for_day(sync.tasks, sync.visits, day)


# -- AI assist -----------------------------------------------------------------

@app.post("/api/ai/classify-issue")
def classify_issue(request: TextRequest):
    return _workspace().skills.classify_issue(request.text).model_dump(mode="json")


@app.post("/api/ai/priority")
def score_priority(request: PriorityRequest):
    result = _workspace().skills.score_priority(
        request.title, request.description, request.division.value
    )
    return result.model_dump(mode="json", by_alias=True)


@app.post("/api/ai/refine-chronology")
def refine_chronology(request: TextRequest):
    return {"text": _workspace().skills.refine_chronology(request.text)}


@app.post("/api/ai/autofill/{kind}")
def autofill(kind: str, request: AutofillRequest):
    skills = _workspace().skills
    skill = {
        "tasks": skills.autofill_task,
        "issues": skills.autofill_issue,
        "visits": skills.autofill_visit,
    }.get(kind)
    if skill is None:
        raise HTTPException(status_code=404, detail=f"No autofill for {kind}")
    return {"form": autofill_or_keep(request.form, skill, request.text)}


@app.post("/api/ai/issues/{issue_id}/solution")
def issue_solution(issue_id: str):
    ws = _workspace()
    issue = ws.issues.get(issue_id)
    if issue is None:
        raise _missing("Issue", issue_id)
    return {"text": ws.skills.suggest_solution(issue)}


@app.post("/api/ai/visits/{visit_id}/summary")
def visit_summary(visit_id: str):
    ws = _workspace()
    visit = ws.visits.get(visit_id)
    if visit is None:
        raise _missing("Visit", visit_id)
    return {"text": ws.skills.summarize_visit(visit)}


@app.post("/api/ai/visits/{visit_id}/improvement")
def visit_improvement(visit_id: str):
    ws = _workspace()
    visit = ws.visits.get(visit_id)
    if visit is None:
        raise _missing("Visit", visit_id)
    return {"text": ws.skills.suggest_improvement(visit)}


@app.post("/api/chat")
def chat_endpoint(request: ChatRequest):
    if _chat is None:
        raise HTTPException(status_code=503, detail="Chat not initialized")
    reply = _chat.send(request.message)
    if reply is None:
        return {"reply": _chat.history[-1].content, "ok": False}

    body: dict[str, Any] = {"ok": True, **reply.model_dump(mode="json", by_alias=True)}
    if request.apply_action and reply.action is not None:
        outcome = _chat.apply_action(reply)
        body["outcome"] = outcome.to_dict() if outcome else None
    return body


if __name__ == "__main__":
    import uvicorn
    from fieldops.config import get_server_config
    cfg = get_server_config()
    uvicorn.run("server.app:app", host=cfg.host, port=cfg.port, reload=cfg.reload)
