"""Composition root: wires the local store, coordinator and services together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fieldops.config import get_local_store_config, get_remote_backend
from fieldops.db.database import Database, get_db
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.db.sync_log_repo import SyncLogRepository
from fieldops.models.partner import Partner
from fieldops.models.reference import SOP, Contact
from fieldops.services.ai_gateway import AIGateway
from fieldops.services.ai_skills import AISkills
from fieldops.services.chat_engine import ChatSession
from fieldops.services.issue_service import IssueService
from fieldops.services.knowledge_service import KnowledgeService
from fieldops.services.partner_service import PartnerService
from fieldops.services.sync_coordinator import Connector, SyncCoordinator
from fieldops.services.task_service import TaskService
from fieldops.services.visit_service import VisitService
from fieldops.stores.local import LocalCollection, local_backend, storage_key

logger = logging.getLogger(__name__)


def remote_connector(backend: Optional[str] = None) -> Connector:
    """Connector for REMOTE_BACKEND; the google clients are imported on first use."""
    name = backend or get_remote_backend()
    if name == "firestore":
        from fieldops.stores.firestore import connect_firestore
        return connect_firestore
    from fieldops.stores.sheets import connect_sheets
    return connect_sheets


@dataclass
class Workspace:
    db: Database
    coordinator: SyncCoordinator
    tasks: TaskService
    issues: IssueService
    visits: VisitService
    partners: PartnerService
    knowledge: KnowledgeService
    skills: AISkills
    partner_store: LocalCollection[Partner]
    sop_store: LocalCollection[SOP]

    def chat_session(self) -> ChatSession:
        return ChatSession(
            self.coordinator,
            gateway=self.skills.gateway,
            partners=self.partner_store,
            sops=self.sop_store,
        )


def build_workspace(
    db: Optional[Database] = None,
    connector: Optional[Connector] = None,
    gateway: Optional[AIGateway] = None,
    prefix: Optional[str] = None,
) -> Workspace:
    db = db or get_db(get_local_store_config().db_path)
    prefix = prefix or get_local_store_config().key_prefix
    repo = KeyValueRepository(db)

    coordinator = SyncCoordinator(
        local_backend(repo, prefix),
        connector=connector or remote_connector(),
        sync_log=SyncLogRepository(db),
    )
    coordinator.load()

    partner_store = LocalCollection(repo, storage_key("partners", prefix), Partner)
    sop_store = LocalCollection(repo, storage_key("sops", prefix), SOP)
    contact_store = LocalCollection(repo, storage_key("contacts", prefix), Contact)

    logger.info("Workspace ready (backend=%s)", coordinator.backend.name)
    return Workspace(
        db=db,
        coordinator=coordinator,
        tasks=TaskService(coordinator),
        issues=IssueService(coordinator),
        visits=VisitService(coordinator),
        partners=PartnerService(partner_store),
        knowledge=KnowledgeService(sop_store, contact_store),
        skills=AISkills(gateway or AIGateway()),
        partner_store=partner_store,
        sop_store=sop_store,
    )
