from decimal import Decimal
from clinic.extensions import db
from clinic.models.status import InvoiceStatus, ClaimStatus
from clinic.models.treatment_models import money
from clinic.utils.time_util import utcnow, isoformat_or_none

PAYMENT_METHODS = ('cash', 'card', 'bank_transfer')
ZERO = Decimal('0.00')

class Invoice(db.Model):
    """Charges for one appointment, split between insurer and patient."""
    __tablename__ = 'invoices'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey('appointments.id'), nullable=False, unique=True)
    invoice_number = db.Column(db.String(32), nullable=False, unique=True)

    total_amount = db.Column(db.Numeric(10, 2), nullable=False)
    insurance_covered = db.Column(db.Numeric(10, 2), default=ZERO)
    patient_responsible = db.Column(db.Numeric(10, 2), nullable=False)
    paid_amount = db.Column(db.Numeric(10, 2), default=ZERO)
    outstanding_balance = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=InvoiceStatus.PENDING.value)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    patient = db.relationship('Patient')
    appointment = db.relationship('Appointment')
    payments = db.relationship('Payment', back_populates='invoice', lazy='dynamic', order_by='Payment.id')
    claims = db.relationship('InsuranceClaim', back_populates='invoice', lazy='dynamic')

    def recalculate_balances(self):
        """outstanding = total - insurance covered - paid, never below zero."""
        covered = self.insurance_covered or ZERO
        paid = self.paid_amount or ZERO
        self.patient_responsible = max(self.total_amount - covered, ZERO)
        self.outstanding_balance = max(self.total_amount - covered - paid, ZERO)

    def settled_status(self):
        """Status implied by the current balances, or None if it should not move."""
        current = InvoiceStatus(self.status)
        if self.outstanding_balance == ZERO:
            return InvoiceStatus.PAID
        if (self.paid_amount or ZERO) > ZERO and current == InvoiceStatus.PENDING:
            return InvoiceStatus.PARTIALLY_PAID
        return None

    def to_dict(self, include_payments=False):
        result = {
            'id': self.id,
            'patientId': self.patient_id,
            'appointmentId': self.appointment_id,
            'invoiceNumber': self.invoice_number,
            'totalAmount': money(self.total_amount),
            'insuranceCovered': money(self.insurance_covered),
            'patientResponsible': money(self.patient_responsible),
            'paidAmount': money(self.paid_amount),
            'outstandingBalance': money(self.outstanding_balance),
            'status': self.status,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
        if include_payments:
            result['payments'] = [p.to_dict() for p in self.payments]
        return result

class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoices.id'), nullable=False, index=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    payment_method = db.Column(db.String(20), nullable=False)
    payment_date = db.Column(db.DateTime, default=utcnow)
    transaction_reference = db.Column(db.Text)
    processed_by = db.Column(db.String(36), db.ForeignKey('user.id'), nullable=False)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)

    invoice = db.relationship('Invoice', back_populates='payments')

    def to_dict(self):
        return {
            'id': self.id,
            'invoiceId': self.invoice_id,
            'amount': money(self.amount),
            'paymentMethod': self.payment_method,
            'paymentDate': isoformat_or_none(self.payment_date),
            'transactionReference': self.transaction_reference,
            'processedBy': self.processed_by,
            'notes': self.notes,
            'createdAt': isoformat_or_none(self.created_at),
        }

class InsuranceClaim(db.Model):
    """A claim against an invoice under one of the patient's policies."""
    __tablename__ = 'insurance_claims'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoices.id'), nullable=False, index=True)
    patient_insurance_id = db.Column(db.Integer, db.ForeignKey('patient_insurance.id'), nullable=False)
    claim_number = db.Column(db.String(32), nullable=False, unique=True)
    claim_amount = db.Column(db.Numeric(10, 2), nullable=False)
    approved_amount = db.Column(db.Numeric(10, 2))
    status = db.Column(db.String(20), nullable=False, default=ClaimStatus.SUBMITTED.value)
    submission_date = db.Column(db.DateTime, default=utcnow)
    response_date = db.Column(db.DateTime)
    rejection_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    invoice = db.relationship('Invoice', back_populates='claims')
    policy = db.relationship('PatientInsurance')

    def to_dict(self):
        return {
            'id': self.id,
            'invoiceId': self.invoice_id,
            'patientInsuranceId': self.patient_insurance_id,
            'claimNumber': self.claim_number,
            'claimAmount': money(self.claim_amount),
            'approvedAmount': money(self.approved_amount),
            'status': self.status,
            'submissionDate': isoformat_or_none(self.submission_date),
            'responseDate': isoformat_or_none(self.response_date),
            'rejectionReason': self.rejection_reason,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }
