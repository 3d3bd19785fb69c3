from clinic.extensions import db
from clinic.utils.time_util import utcnow, isoformat_or_none

class Branch(db.Model):
    """A physical clinic location. Owns the patients and staff registered there."""
    __tablename__ = 'branches'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    location = db.Column(db.Text, nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.Text)
    email = db.Column(db.Text)
    operating_hours = db.Column(db.Text, default='08:00-20:00')
    is_active = db.Column(db.Boolean, default=True)
    # Last patient number handed out at this branch
    patient_sequence = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utcnow)

    patients = db.relationship('Patient', back_populates='branch', lazy='dynamic')
    staff = db.relationship('MedicalStaff', back_populates='branch', lazy='dynamic')

    @property
    def patient_id_prefix(self) -> str:
        return self.location[:3].upper()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'location': self.location,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'operatingHours': self.operating_hours,
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
        }

class MedicalStaff(db.Model):
    """Doctors and clinical staff, each tied 1:1 to a login user."""
    __tablename__ = 'medical_staff'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False, unique=True)
    first_name = db.Column(db.Text, nullable=False)
    last_name = db.Column(db.Text, nullable=False)
    specialty = db.Column(db.Text)
    license_number = db.Column(db.Text)
    phone = db.Column(db.Text)
    email = db.Column(db.Text)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    user = db.relationship('User', back_populates='staff_profile')
    branch = db.relationship('Branch', back_populates='staff')

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'specialty': self.specialty,
            'licenseNumber': self.license_number,
            'phone': self.phone,
            'email': self.email,
            'branchId': self.branch_id,
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
        }
