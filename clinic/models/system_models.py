# /clinic/models/system_models.py
import json
from clinic.extensions import db
from clinic.utils.time_util import utcnow, isoformat_or_none

class AuditLog(db.Model):
    """Append-only record of who changed what, with before/after snapshots."""
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False, index=True)
    action = db.Column(db.String(50), nullable=False)
    table_name = db.Column(db.String(64), nullable=False)
    record_id = db.Column(db.String(64), nullable=False)
    old_values = db.Column(db.Text)  # JSON string
    new_values = db.Column(db.Text)  # JSON string
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(255))

    @staticmethod
    def _load(value):
        return json.loads(value) if value else None

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'action': self.action,
            'tableName': self.table_name,
            'recordId': self.record_id,
            'oldValues': self._load(self.old_values),
            'newValues': self._load(self.new_values),
            'timestamp': isoformat_or_none(self.timestamp),
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
        }
