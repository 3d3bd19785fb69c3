from clinic.extensions import db
from clinic.models.status import AppointmentStatus
from clinic.utils.time_util import utcnow, isoformat_or_none

APPOINTMENT_TYPES = ('regular', 'emergency', 'walk-in')

class Appointment(db.Model):
    """A visit booked for a patient with a doctor at a branch."""
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_id = db.Column(db.Integer, db.ForeignKey('medical_staff.id'), nullable=False, index=True)
    branch_id = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False)

    appointment_date = db.Column(db.Date, nullable=False)
    appointment_time = db.Column(db.String(5), nullable=False)  # HH:MM
    status = db.Column(db.String(20), nullable=False, default=AppointmentStatus.SCHEDULED.value)
    appointment_type = db.Column(db.String(20), default='regular')
    notes = db.Column(db.Text)
    cancellation_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    patient = db.relationship('Patient')
    doctor = db.relationship('MedicalStaff')
    branch = db.relationship('Branch')
    treatment_records = db.relationship(
        'TreatmentRecord',
        back_populates='appointment',
        lazy='dynamic',
        order_by='TreatmentRecord.id'
    )

    def to_dict(self):
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'doctorId': self.doctor_id,
            'branchId': self.branch_id,
            'appointmentDate': isoformat_or_none(self.appointment_date),
            'appointmentTime': self.appointment_time,
            'status': self.status,
            'appointmentType': self.appointment_type,
            'notes': self.notes,
            'cancellationReason': self.cancellation_reason,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
