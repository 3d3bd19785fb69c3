from clinic.extensions import db
from clinic.utils.encryption_util import encryptor, mask
from clinic.utils.time_util import utcnow, isoformat_or_none

GENDERS = ('male', 'female', 'other')

def format_patient_id(prefix: str, sequence: int) -> str:
    """'SPR' + 7 -> 'SPR007'. Sequences past 999 simply get longer."""
    return f"{prefix}{sequence:03d}"

class Patient(db.Model):
    """A patient registered at one branch, keyed by a branch-prefixed id."""
    __tablename__ = 'patients'

    id = db.Column(db.String(32), primary_key=True)
    first_name = db.Column(db.Text, nullable=False)
    last_name = db.Column(db.Text, nullable=False)
    date_of_birth = db.Column(db.Date, nullable=False)
    gender = db.Column(db.String(10), nullable=False)
    address = db.Column(db.Text, nullable=False)
    phone = db.Column(db.Text, nullable=False)
    email = db.Column(db.Text)
    emergency_contact_name = db.Column(db.Text)
    emergency_contact_phone = db.Column(db.Text)
    emergency_contact_relation = db.Column(db.Text)
    registered_branch = db.Column(db.Integer, db.ForeignKey('branches.id'), nullable=False, index=True)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    branch = db.relationship('Branch', back_populates='patients')
    insurance_policies = db.relationship('PatientInsurance', back_populates='patient', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'firstName': self.first_name,
            'lastName': self.last_name,
            'dateOfBirth': isoformat_or_none(self.date_of_birth),
            'gender': self.gender,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'emergencyContactName': self.emergency_contact_name,
            'emergencyContactPhone': self.emergency_contact_phone,
            'emergencyContactRelation': self.emergency_contact_relation,
            'registeredBranch': self.registered_branch,
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
            'updatedAt': isoformat_or_none(self.updated_at),
        }

class InsuranceProvider(db.Model):
    __tablename__ = 'insurance_providers'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.Text, nullable=False)
    contact_info = db.Column(db.Text)
    processing_requirements = db.Column(db.Text)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'contactInfo': self.contact_info,
            'processingRequirements': self.processing_requirements,
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
        }

class PatientInsurance(db.Model):
    """Links a patient to a provider policy. The policy number is stored encrypted."""
    __tablename__ = 'patient_insurance'

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(32), db.ForeignKey('patients.id'), nullable=False, index=True)
    provider_id = db.Column(db.Integer, db.ForeignKey('insurance_providers.id'), nullable=False)
    policy_number = db.Column(db.Text, nullable=False)  # Encrypted
    coverage_details = db.Column(db.Text)
    expiration_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=utcnow)

    patient = db.relationship('Patient', back_populates='insurance_policies')
    provider = db.relationship('InsuranceProvider')

    def set_policy_number(self, policy_number: str) -> None:
        self.policy_number = encryptor.encrypt(policy_number)

    def get_policy_number(self):
        return encryptor.decrypt(self.policy_number)

    def to_dict(self):
        return {
            'id': self.id,
            'patientId': self.patient_id,
            'providerId': self.provider_id,
            'providerName': self.provider.name if self.provider else None,
            'policyNumber': self.get_policy_number(),
            'coverageDetails': self.coverage_details,
            'expirationDate': isoformat_or_none(self.expiration_date),
            'isActive': self.is_active,
            'createdAt': isoformat_or_none(self.created_at),
        }

    def audit_dict(self):
        """Audit snapshots keep only the last four characters of the policy number."""
        result = self.to_dict()
        result['policyNumber'] = mask(result['policyNumber'])
        return result
