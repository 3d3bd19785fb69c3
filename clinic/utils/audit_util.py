# /clinic/utils/audit_util.py
import json
from flask import request, current_app
from flask_jwt_extended import get_jwt_identity
from clinic.extensions import db
from clinic.models.system_models import AuditLog


def snapshot(record):
    """Serializes a model's API representation for the audit trail."""
    if record is None:
        return None
    serialize = getattr(record, 'audit_dict', record.to_dict)
    return json.dumps(serialize(), default=str, sort_keys=True)


def record_audit(action, record, old_values=None):
    """Adds an audit row to the current session.

    The row is committed together with the change it describes, so a failed
    commit leaves neither behind. ``old_values`` should be a snapshot taken
    before the record was modified.
    """
    user_id = get_jwt_identity()
    entry = AuditLog(
        user_id=user_id,
        action=action,
        table_name=record.__tablename__,
        record_id=str(record.id),
        old_values=old_values,
        new_values=snapshot(record),
        ip_address=request.remote_addr,
        user_agent=(request.headers.get('User-Agent') or '')[:255] or None,
    )
    db.session.add(entry)
    current_app.audit_logger.info(
        f"Action='{action}', Table='{entry.table_name}', RecordID='{entry.record_id}', UserID='{user_id}'"
    )
    return entry
