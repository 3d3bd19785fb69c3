import uuid
from clinic.extensions import db, bcrypt
from clinic.utils.time_util import utcnow, isoformat_or_none

ROLES = ('doctor', 'staff', 'admin', 'patient')

class User(db.Model):
    """Login identity. Staff members link to one of these via MedicalStaff.user_id."""
    __tablename__ = 'user'

    id = db.Column(db.String(36), primary_key=True, default=lambda: uuid.uuid4().hex)
    username = db.Column(db.String(150), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(20), nullable=False, default='staff')
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    # --- Relationships ---
    sessions = db.relationship('Session', backref='user', lazy='dynamic')
    staff_profile = db.relationship('MedicalStaff', back_populates='user', uselist=False)

    def set_password(self, password: str) -> None:
        """Hashes and sets the user's password, enforcing complexity rules."""
        if not self._validate_password_strength(password):
            raise ValueError("Password does not meet complexity requirements")
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password: str) -> bool:
        return bcrypt.check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'role': self.role,
            'isActive': self.is_active,
            'staffId': self.staff_profile.id if self.staff_profile else None,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }

    @staticmethod
    def _validate_password_strength(password: str) -> bool:
        """Validates that a password meets the required complexity."""
        return (len(password) >= 12 and
                any(c.isupper() for c in password) and
                any(c.islower() for c in password) and
                any(c.isdigit() for c in password) and
                any(c in '!@#$%^&*()_+-=[]{}|;:,.<>?' for c in password))

class Session(db.Model):
    """One row per issued token; the id is the token's jti."""
    __tablename__ = 'session'

    id = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False, index=True)
    expires_at = db.Column(db.DateTime, nullable=False)

    def is_valid(self, now=None) -> bool:
        return (now or utcnow()) < self.expires_at

    def revoke(self):
        self.expires_at = utcnow()
