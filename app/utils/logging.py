"""
Logging utilities for the audit trail of user actions.
"""

import logging

from app.models import LogEntry
from app import db

logger = logging.getLogger(__name__)


def log_activity(project, category, description, actor=None, commit=True):
    """
    Record an action in the audit log.

    Args:
        project (str): Area of the app (e.g., 'users', 'tracking', 'groups')
        category (str): Short action name (e.g., 'Create', 'Join')
        description (str): Human-readable description of what happened
        actor (User, optional): The user who performed the action
        commit (bool): Commit the session after adding the entry
    """
    log_entry = LogEntry(
        project=project,
        category=category,
        actor_id=actor.id if actor is not None else None,
        description=description
    )
    db.session.add(log_entry)
    if commit:
        db.session.commit()
    logger.info(f"[{project}/{category}] {description}")
    return log_entry
