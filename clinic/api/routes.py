# /clinic/api/routes.py

from flask_jwt_extended import jwt_required
from . import api_bp
from clinic.extensions import limiter
from clinic.utils.decorators import access_log, require_role
from .controllers import (
    auth_controller, user_controller, branch_controller, patient_controller,
    treatment_controller, staff_controller, appointment_controller,
    insurance_controller, billing_controller, claim_controller, audit_controller
)

ADMIN = ('admin',)
CLINICAL = ('admin', 'staff', 'doctor')
BILLING = ('admin', 'staff')


# --- Authentication Endpoints ---
@api_bp.route('/auth/login', methods=['POST'])
@limiter.limit("10 per minute")
@access_log("USER_LOGIN", "authentication")
def login():
    return auth_controller.login_user()

@api_bp.route('/auth/logout', methods=['POST'])
@jwt_required()
@access_log("USER_LOGOUT", "authentication")
def logout():
    return auth_controller.logout_user()

@api_bp.route('/auth/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    return auth_controller.refresh_token()

@api_bp.route('/auth/register', methods=['POST'])
@jwt_required()
@limiter.limit("20 per hour")
@require_role(*ADMIN)
@access_log("USER_REGISTRATION", "users")
def register():
    return auth_controller.register_user()


# --- User Profile Endpoint ---
@api_bp.route('/users/me', methods=['GET'])
@jwt_required()
def get_current_user_route():
    return user_controller.get_current_user_details()


# --- Branch Endpoints ---
@api_bp.route('/branches', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
def get_branches_route():
    return branch_controller.get_branches()

@api_bp.route('/branches', methods=['POST'])
@jwt_required()
@require_role(*ADMIN)
@access_log("CREATE_BRANCH", "branches")
def create_branch_route():
    return branch_controller.create_branch()


# --- Patient Endpoints ---
@api_bp.route('/patients', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_PATIENTS", "patients")
def get_patients_route():
    return patient_controller.get_patients()

@api_bp.route('/patients', methods=['POST'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("PATIENT_REGISTRATION", "patients")
def create_patient_route():
    return patient_controller.create_patient()

@api_bp.route('/patients/<string:patient_id>', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_PATIENT_DETAIL", "patients")
def get_patient_route(patient_id):
    return patient_controller.get_patient(patient_id)

@api_bp.route('/patients/<string:patient_id>/insurance', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_PATIENT_INSURANCE", "patient_insurance")
def get_patient_insurance_route(patient_id):
    return insurance_controller.get_patient_policies(patient_id)

@api_bp.route('/patients/<string:patient_id>/insurance', methods=['POST'])
@jwt_required()
@require_role(*BILLING)
@access_log("ADD_PATIENT_INSURANCE", "patient_insurance")
def add_patient_insurance_route(patient_id):
    return insurance_controller.add_patient_policy(patient_id)


# --- Treatment Catalog Endpoints ---
@api_bp.route('/treatments', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
def get_treatments_route():
    return treatment_controller.get_treatments()

@api_bp.route('/treatments', methods=['POST'])
@jwt_required()
@require_role(*ADMIN)
@access_log("CREATE_TREATMENT", "treatments")
def create_treatment_route():
    return treatment_controller.create_treatment()


# --- Medical Staff Endpoints ---
@api_bp.route('/staff', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
def get_staff_route():
    return staff_controller.get_staff()

@api_bp.route('/staff', methods=['POST'])
@jwt_required()
@require_role(*ADMIN)
@access_log("CREATE_STAFF", "medical_staff")
def create_staff_route():
    return staff_controller.create_staff()


# --- Appointment Endpoints ---
@api_bp.route('/appointments', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_APPOINTMENTS", "appointments")
def get_appointments_route():
    return appointment_controller.get_appointments()

@api_bp.route('/appointments', methods=['POST'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("CREATE_APPOINTMENT", "appointments")
def create_appointment_route():
    return appointment_controller.create_appointment()

@api_bp.route('/appointments/<int:appointment_id>', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_APPOINTMENT_DETAIL", "appointments")
def get_appointment_route(appointment_id):
    return appointment_controller.get_appointment(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>/status', methods=['PATCH'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("UPDATE_APPOINTMENT_STATUS", "appointments")
def update_appointment_status_route(appointment_id):
    return appointment_controller.update_appointment_status(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>/treatments', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("VIEW_TREATMENT_RECORDS", "treatment_records")
def get_treatment_records_route(appointment_id):
    return appointment_controller.get_treatment_records(appointment_id)

@api_bp.route('/appointments/<int:appointment_id>/treatments', methods=['POST'])
@jwt_required()
@require_role(*CLINICAL)
@access_log("RECORD_TREATMENT", "treatment_records")
def add_treatment_record_route(appointment_id):
    return appointment_controller.add_treatment_record(appointment_id)


# --- Insurance Provider Endpoints ---
@api_bp.route('/insurance/providers', methods=['GET'])
@jwt_required()
@require_role(*CLINICAL)
def get_providers_route():
    return insurance_controller.get_providers()

@api_bp.route('/insurance/providers', methods=['POST'])
@jwt_required()
@require_role(*ADMIN)
@access_log("CREATE_INSURANCE_PROVIDER", "insurance_providers")
def create_provider_route():
    return insurance_controller.create_provider()


# --- Billing Endpoints ---
@api_bp.route('/invoices', methods=['GET'])
@jwt_required()
@require_role(*BILLING)
@access_log("VIEW_INVOICES", "invoices")
def get_invoices_route():
    return billing_controller.get_invoices()

@api_bp.route('/invoices', methods=['POST'])
@jwt_required()
@require_role(*BILLING)
@access_log("CREATE_INVOICE", "invoices")
def create_invoice_route():
    return billing_controller.create_invoice()

@api_bp.route('/invoices/<int:invoice_id>', methods=['GET'])
@jwt_required()
@require_role(*BILLING)
@access_log("VIEW_INVOICE_DETAIL", "invoices")
def get_invoice_route(invoice_id):
    return billing_controller.get_invoice(invoice_id)

@api_bp.route('/invoices/<int:invoice_id>/payments', methods=['POST'])
@jwt_required()
@require_role(*BILLING)
@access_log("RECORD_PAYMENT", "payments")
def record_payment_route(invoice_id):
    return billing_controller.record_payment(invoice_id)

@api_bp.route('/invoices/<int:invoice_id>/status', methods=['PATCH'])
@jwt_required()
@require_role(*BILLING)
@access_log("UPDATE_INVOICE_STATUS", "invoices")
def update_invoice_status_route(invoice_id):
    return billing_controller.update_invoice_status(invoice_id)


# --- Insurance Claim Endpoints ---
@api_bp.route('/claims', methods=['GET'])
@jwt_required()
@require_role(*BILLING)
@access_log("VIEW_CLAIMS", "insurance_claims")
def get_claims_route():
    return claim_controller.get_claims()

@api_bp.route('/claims', methods=['POST'])
@jwt_required()
@require_role(*BILLING)
@access_log("SUBMIT_CLAIM", "insurance_claims")
def submit_claim_route():
    return claim_controller.submit_claim()

@api_bp.route('/claims/<int:claim_id>', methods=['GET'])
@jwt_required()
@require_role(*BILLING)
@access_log("VIEW_CLAIM_DETAIL", "insurance_claims")
def get_claim_route(claim_id):
    return claim_controller.get_claim(claim_id)

@api_bp.route('/claims/<int:claim_id>/status', methods=['PATCH'])
@jwt_required()
@require_role(*BILLING)
@access_log("UPDATE_CLAIM_STATUS", "insurance_claims")
def update_claim_status_route(claim_id):
    return claim_controller.update_claim_status(claim_id)


# --- Audit Endpoints ---
@api_bp.route('/audit-logs', methods=['GET'])
@jwt_required()
@require_role(*ADMIN)
@access_log("VIEW_AUDIT_LOG", "audit_log")
def get_audit_logs_route():
    return audit_controller.get_audit_logs()
