"""
Keyword lexicon for work classification.

Phrases are matched as lower-case substrings of a work description. Each hit
scores its word count, so "weekly sync" outweighs "sync" on its own.

Categories:
  billable      → revenue-generating client work
  margin_burn   → non-billable overhead
  scope_risk    → work or requests that look outside the contracted scope
"""

from __future__ import annotations

from typing import Dict, List

# Direct client work, production, client-facing strategy
BILLABLE_KEYWORDS = [
    "deliverable", "delivery", "milestone", "final", "completed",
    "client work", "client deliverable", "client presentation",
    "design", "designing", "coded", "coding", "developed", "development",
    "wrote", "writing", "content", "copywriting", "created", "creating",
    "built", "building", "implemented", "implementation",
    "client strategy", "strategy session with client", "client call",
    "client meeting", "presentation to client", "demo to client",
    "billable", "invoiceable", "chargeable",
]

# Meetings, communication overhead, admin, rework, setup, waiting
BURN_KEYWORDS = [
    "internal meeting", "team meeting", "standup", "stand-up", "sync",
    "weekly sync", "daily standup", "all-hands", "retrospective", "retro",
    "planning meeting", "brainstorm", "ideation session",
    "slack", "email", "emails", "responding to", "replied to",
    "checking messages", "chat", "dm", "direct message",
    "admin", "administrative", "paperwork", "documentation",
    "updating jira", "jira update", "ticket update", "status update",
    "timesheet", "expense report", "invoicing", "billing admin",
    "internal", "internal review", "peer review", "code review",
    "internal presentation", "team presentation",
    "rework", "redo", "revision", "fixing bug", "bug fix", "hotfix",
    "debugging", "troubleshooting", "investigation",
    "setup", "setting up", "configuration", "config", "onboarding",
    "training", "learning", "research", "researching", "reading",
    "waiting for", "blocked by", "pending", "on hold",
]

SCOPE_RISK_KEYWORDS = [
    "quick favor", "small request", "can you also", "while you're at it",
    "one more thing", "additional", "extra", "bonus",
    "not in scope", "out of scope", "scope change", "change request",
    "new feature", "feature request", "enhancement",
    "urgent request", "asap", "rush", "priority change",
    "client asked for", "client wants", "client requested",
]

# Scope-risk hits count for more than plain burn hits
SCOPE_RISK_WEIGHT = 1.5

# Order matters: the first reason wins a tie on match count.
BURN_REASONS = [
    "scope_creep",
    "internal_meeting",
    "rework",
    "admin",
    "communication",
    "planning",
    "research",
    "setup",
    "other",
]

BURN_REASON_PATTERNS: Dict[str, List[str]] = {
    "scope_creep": ["scope", "additional", "extra", "not in contract", "new request"],
    "internal_meeting": ["meeting", "sync", "standup", "call", "discussion", "brainstorm"],
    "rework": ["rework", "redo", "revision", "bug", "fix", "debug", "troubleshoot"],
    "admin": ["admin", "jira", "ticket", "status", "timesheet", "paperwork"],
    "communication": ["slack", "email", "chat", "message", "reply", "respond"],
    "planning": ["planning", "plan", "roadmap", "strategy", "ideation"],
    "research": ["research", "learning", "reading", "study", "investigation"],
    "setup": ["setup", "config", "onboarding", "training", "installation"],
    "other": [],
}

BURN_REASON_LABELS = {
    "scope_creep": "Scope Creep",
    "internal_meeting": "Internal Meeting",
    "rework": "Rework / Bug Fix",
    "admin": "Admin / Overhead",
    "communication": "Communication",
    "planning": "Planning / Strategy",
    "research": "Research / Learning",
    "setup": "Setup / Config",
    "other": "Other",
}

CATEGORIES = ["billable", "margin_burn", "scope_risk", "unclassified"]
BURN_CATEGORIES = ("margin_burn", "scope_risk")

CATEGORY_LABELS = {
    "billable": "Billable",
    "margin_burn": "Margin Burn",
    "scope_risk": "Scope Risk",
    "unclassified": "Unclassified",
}
