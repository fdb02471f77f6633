"""
Demo agency dataset and JSON loader.

Supports:
- Bundled demo dataset (no storage backend required)
- JSON files with the same shape as BUILTIN_DATASET

Work logs and scope requests are replayed through the store, so every demo
log is classified and costed exactly like a live one. Timestamps are given as
`hours_ago` relative to load time, or as an ISO `created_at`.
"""

from __future__ import annotations

import copy
import datetime
import json
import logging
from pathlib import Path
from typing import Optional, Union

from margindefense.models import Client, Organization, Project, ValidationError, as_utc, utcnow
from margindefense.store import InMemoryStore

logger = logging.getLogger(__name__)

BUILTIN_DATASET = {
    "organization": {
        "id": "org-demo-001",
        "name": "Acme Digital Agency",
        "currency_symbol": "$",
        "global_hourly_cost": 75,
    },
    "clients": [
        {"id": "client-001", "name": "TechCorp Industries", "retainer_value": 15000},
        {"id": "client-002", "name": "StartupXYZ", "retainer_value": 8000},
        {"id": "client-003", "name": "Enterprise Solutions Ltd", "retainer_value": 25000},
    ],
    "projects": [
        {"id": "proj-001", "client_id": "client-001", "name": "Website Redesign",
         "description": "Complete website overhaul with new branding",
         "total_budget": 45000, "current_spend": 38000, "margin_health": "warning"},
        {"id": "proj-002", "client_id": "client-002", "name": "Mobile App MVP",
         "description": "iOS and Android app development",
         "total_budget": 60000, "current_spend": 72000, "margin_health": "underwater"},
        {"id": "proj-003", "client_id": "client-003", "name": "CRM Integration",
         "description": "Salesforce integration with custom workflows",
         "total_budget": 30000, "current_spend": 18000, "margin_health": "healthy"},
    ],
    "work_logs": [
        # Today
        {"description": "Weekly team sync meeting - all hands on deck", "duration_minutes": 60,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 2},
        {"description": "Designed and delivered homepage mockups to client", "duration_minutes": 180,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 4},
        {"description": "Debugging login authentication issue - client reported bug", "duration_minutes": 120,
         "client_id": "client-002", "project_id": "proj-002", "hours_ago": 5},
        {"description": "Responding to Slack messages and email backlog", "duration_minutes": 90,
         "hours_ago": 6},
        # Yesterday
        {"description": "Client strategy call to discuss Q2 roadmap", "duration_minutes": 60,
         "client_id": "client-003", "project_id": "proj-003", "hours_ago": 24},
        {"description": "Internal brainstorming session for new feature ideas", "duration_minutes": 90,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 25},
        {"description": "Built and tested user profile API endpoints", "duration_minutes": 240,
         "client_id": "client-002", "project_id": "proj-002", "hours_ago": 26},
        # Earlier this week
        {"description": "Updating Jira tickets and writing status reports", "duration_minutes": 60,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 48},
        {"description": "Implemented Salesforce webhook integration", "duration_minutes": 300,
         "client_id": "client-003", "project_id": "proj-003", "hours_ago": 49},
        {"description": "Emergency all-hands to discuss project delays", "duration_minutes": 120,
         "client_id": "client-002", "project_id": "proj-002", "hours_ago": 72},
        {"description": "Reworking payment flow due to changed requirements", "duration_minutes": 240,
         "client_id": "client-002", "project_id": "proj-002", "hours_ago": 73},
        {"description": "Delivered final brand guidelines document", "duration_minutes": 180,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 96},
        {"description": "Research and learning new Salesforce API features", "duration_minutes": 120,
         "client_id": "client-003", "project_id": "proj-003", "hours_ago": 120},
        {"description": "Setup dev environment for new team member", "duration_minutes": 180,
         "client_id": "client-001", "project_id": "proj-001", "hours_ago": 144},
    ],
    "scope_requests": [
        {"title": "Can you also add a blog section?",
         "description": "Client asked if we could \"quickly add\" a blog to the website. Not in original scope.",
         "client_id": "client-001", "project_id": "proj-001", "estimated_hours": 40, "hours_ago": 3},
        {"title": "Add dark mode to the app",
         "description": "StartupXYZ wants dark mode. \"Should be easy right?\" - definitely not in contract.",
         "client_id": "client-002", "project_id": "proj-002", "estimated_hours": 24, "hours_ago": 24},
        {"title": "Extra reporting dashboard",
         "description": "Enterprise wants custom analytics dashboard. \"While you're in there anyway...\"",
         "client_id": "client-003", "project_id": "proj-003", "estimated_hours": 60, "hours_ago": 48},
    ],
}


def _timestamp(record: dict, now: datetime.datetime) -> datetime.datetime:
    if "created_at" in record:
        return as_utc(datetime.datetime.fromisoformat(record["created_at"]))
    return now - datetime.timedelta(hours=record.get("hours_ago", 0))


def build_store(data: dict, now: Optional[datetime.datetime] = None) -> InMemoryStore:
    """Build a populated store from a dataset dict."""
    now = now or utcnow()
    try:
        org = Organization(**data["organization"])
    except (KeyError, TypeError) as e:
        raise ValidationError(f"dataset has no usable organization: {e}") from e

    store = InMemoryStore(
        organization=org,
        clients=[Client(organization_id=org.id, **c) for c in data.get("clients", [])],
    )
    for project in data.get("projects", []):
        store.add_project(Project(**project))

    for log in data.get("work_logs", []):
        store.create_work_log(
            description=log["description"],
            duration_minutes=log["duration_minutes"],
            project_id=log.get("project_id"),
            client_id=log.get("client_id"),
            hourly_rate=log.get("hourly_rate"),
            source=log.get("source", "manual"),
            created_at=_timestamp(log, now),
        )

    for req in data.get("scope_requests", []):
        store.create_scope_request(
            title=req["title"],
            description=req.get("description", ""),
            client_id=req.get("client_id"),
            project_id=req.get("project_id"),
            estimated_hours=req.get("estimated_hours"),
            created_at=_timestamp(req, now),
        )

    logger.info(
        "Loaded %d clients, %d projects, %d work logs, %d scope requests",
        len(store.clients), len(store.projects), len(store.work_logs), len(store.scope_requests),
    )
    return store


def load_demo_store(now: Optional[datetime.datetime] = None) -> InMemoryStore:
    """Load the bundled demo dataset. No storage backend required."""
    return build_store(copy.deepcopy(BUILTIN_DATASET), now=now)


def load_store_from_json(path: Union[str, Path], now: Optional[datetime.datetime] = None) -> InMemoryStore:
    with open(path) as f:
        data = json.load(f)
    return build_store(data, now=now)
