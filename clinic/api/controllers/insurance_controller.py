from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.patient_models import Patient, InsuranceProvider, PatientInsurance
from clinic.utils.audit_util import record_audit
from clinic.utils.validation import get_json_body, require_fields, parse_int, parse_bool, parse_date, optional

def get_providers():
    providers = InsuranceProvider.query.order_by(InsuranceProvider.name).all()
    return jsonify([provider.to_dict() for provider in providers]), 200

def create_provider():
    data = get_json_body()
    require_fields(data, ['name'])

    provider = InsuranceProvider(
        name=data['name'],
        contact_info=data.get('contactInfo'),
        processing_requirements=data.get('processingRequirements'),
        is_active=parse_bool(data.get('isActive'), 'isActive', default=True)
    )

    try:
        db.session.add(provider)
        db.session.flush()
        record_audit('CREATE', provider)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating insurance provider: {e}')
        return jsonify({'error': 'Failed to create insurance provider'}), 500

    return jsonify(provider.to_dict()), 201

def get_patient_policies(patient_id):
    patient = db.session.get(Patient, patient_id)
    if not patient:
        return jsonify({'error': 'Patient not found'}), 404
    policies = patient.insurance_policies.order_by(PatientInsurance.id).all()
    return jsonify([policy.to_dict() for policy in policies]), 200

def add_patient_policy(patient_id):
    """Attaches an insurance policy to a patient; the policy number is encrypted at rest."""
    patient = db.session.get(Patient, patient_id)
    if not patient:
        return jsonify({'error': 'Patient not found'}), 404

    data = get_json_body()
    require_fields(data, ['providerId', 'policyNumber'])
    provider_id = parse_int(data['providerId'], 'providerId')
    expiration_date = optional(data, 'expirationDate', parse_date)

    provider = db.session.get(InsuranceProvider, provider_id)
    if not provider:
        return jsonify({'error': 'Invalid insurance provider'}), 400

    policy = PatientInsurance(
        patient_id=patient.id,
        provider_id=provider.id,
        coverage_details=data.get('coverageDetails'),
        expiration_date=expiration_date,
        is_active=parse_bool(data.get('isActive'), 'isActive', default=True)
    )
    policy.set_policy_number(str(data['policyNumber']))

    try:
        db.session.add(policy)
        db.session.flush()
        record_audit('CREATE', policy)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error adding insurance policy for patient {patient_id}: {e}')
        return jsonify({'error': 'Failed to add insurance policy'}), 500

    return jsonify(policy.to_dict()), 201
