from clinic.models.user_models import User, Session
from clinic.models.branch_models import Branch, MedicalStaff
from clinic.models.patient_models import Patient, InsuranceProvider, PatientInsurance
from clinic.models.treatment_models import Treatment, TreatmentRecord
from clinic.models.appointment_models import Appointment
from clinic.models.billing_models import Invoice, Payment, InsuranceClaim
from clinic.models.system_models import AuditLog

__all__ = [
    'User', 'Session', 'Branch', 'MedicalStaff', 'Patient', 'InsuranceProvider',
    'PatientInsurance', 'Treatment', 'TreatmentRecord', 'Appointment', 'Invoice',
    'Payment', 'InsuranceClaim', 'AuditLog',
]
