from flask import request, jsonify
from clinic.models.system_models import AuditLog
from clinic.utils.validation import query_int, ValidationError

DEFAULT_LIMIT = 100
MAX_LIMIT = 500

def get_audit_logs():
    """Lists audit entries, newest first."""
    query = AuditLog.query

    table_name = request.args.get('tableName')
    if table_name:
        query = query.filter(AuditLog.table_name == table_name)
    record_id = request.args.get('recordId')
    if record_id:
        query = query.filter(AuditLog.record_id == record_id)
    user_id = request.args.get('userId')
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)

    limit = query_int('limit')
    if limit is None:
        limit = DEFAULT_LIMIT
    if not 1 <= limit <= MAX_LIMIT:
        raise ValidationError(f'limit must be between 1 and {MAX_LIMIT}', {'limit': 'out_of_range'})

    entries = query.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([entry.to_dict() for entry in entries]), 200
