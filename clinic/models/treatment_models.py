from clinic.extensions import db
from clinic.utils.time_util import utcnow, isoformat_or_none

def money(value):
    """Formats a Numeric(10, 2) value for JSON as a fixed-point string."""
    return None if value is None else f"{value:.2f}"

class Treatment(db.Model):
    """Catalog entry for a billable service."""
    __tablename__ = 'treatments'

    id = db.Column(db.Integer, primary_key=True)
    service_code = db.Column(db.Text, nullable=False, unique=True)
    name = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    category = db.Column(db.Text, index=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'serviceCode': self.service_code,
            'name': self.name,
            'description': self.description,
            'price': money(self.price),
            'category': self.category,
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }

class TreatmentRecord(db.Model):
    """A treatment line item delivered during an appointment."""
    __tablename__ = 'treatment_records'

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, index=True)
    treatment_id = db.Column(db.Integer, db.ForeignKey('treatments.id'), nullable=False)
    quantity = db.Column(db.Integer, default=1)
    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)
    consultation_notes = db.Column(db.Text)
    recorded_by = db.Column(db.Integer, db.ForeignKey('medical_staff.id'), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow)

    appointment = db.relationship('Appointment', back_populates='treatment_records')
    treatment = db.relationship('Treatment')
    recorder = db.relationship('MedicalStaff')

    def to_dict(self):
        return {
            'id': self.id,
            'appointmentId': self.appointment_id,
            'treatmentId': self.treatment_id,
            'treatmentName': self.treatment.name if self.treatment else None,
            'quantity': self.quantity,
            'unitPrice': money(self.unit_price),
            'totalPrice': money(self.total_price),
            'consultationNotes': self.consultation_notes,
            'recordedBy': self.recorded_by,
            'createdAt': isoformat_or_none(self.created_at),
        }
