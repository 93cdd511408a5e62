import json
from flask import has_request_context, request
from models import db
from models.audit_log import AuditLog


def log_event(action: str, actor_id=None, entity=None, entity_id=None, metadata=None, commit=True):
    """
    Append an audit row. Request details are recorded when there is a request;
    scheduler and CLI runs log with actor_id=None.

    commit=False leaves the row in the caller's open transaction.
    """
    ip = None
    user_agent = None
    if has_request_context():
        ip = request.headers.get("X-Forwarded-For", request.remote_addr)
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    row = AuditLog(
        actor_id=actor_id,
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        ip=ip,
        user_agent=user_agent,
        metadata_json=json.dumps(metadata, default=str) if metadata else None,
    )
    db.session.add(row)
    if commit:
        db.session.commit()
    return row
