from flask import request, jsonify, current_app
from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.branch_models import Branch
from clinic.models.patient_models import Patient, GENDERS, format_patient_id
from clinic.utils.audit_util import record_audit
from clinic.utils.time_util import isoformat_or_none
from clinic.utils.validation import (
    get_json_body, require_fields, parse_date, parse_choice, parse_int, parse_bool, query_int
)

PATIENT_REQUIRED_FIELDS = [
    'firstName', 'lastName', 'dateOfBirth', 'gender', 'address', 'phone', 'registeredBranch'
]

class PatientIdUnavailable(Exception):
    """No free patient id could be allocated for a branch."""

def _like_pattern(term):
    """Builds a substring LIKE pattern with wildcards in the term escaped."""
    escaped = term.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
    return f'%{escaped}%'

def _serialize_listing(patient, branch_name):
    return {
        'id': patient.id,
        'firstName': patient.first_name,
        'lastName': patient.last_name,
        'dateOfBirth': isoformat_or_none(patient.date_of_birth),
        'gender': patient.gender,
        'phone': patient.phone,
        'email': patient.email,
        'registeredBranch': patient.registered_branch,
        'branchName': branch_name,
        'createdAt': isoformat_or_none(patient.created_at),
    }

def _next_patient_sequence(branch_id):
    """Atomically bumps the branch's patient counter and returns the new value.

    The UPDATE takes a row lock that is held until the request commits, so two
    registrations at the same branch never read the same number.
    """
    db.session.execute(
        update(Branch)
        .where(Branch.id == branch_id)
        .values(patient_sequence=Branch.patient_sequence + 1)
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(
        select(Branch.patient_sequence).where(Branch.id == branch_id)
    ).scalar_one()

def allocate_patient_id(branch):
    """Returns the next free id for ``branch``, e.g. 'SPR001'.

    Numbers already taken (by another branch sharing the same location prefix,
    or rows inserted outside the counter) are skipped.
    """
    for _ in range(current_app.config['PATIENT_ID_MAX_ATTEMPTS']):
        candidate = format_patient_id(branch.patient_id_prefix, _next_patient_sequence(branch.id))
        if db.session.get(Patient, candidate) is None:
            return candidate
    raise PatientIdUnavailable(branch.id)

def get_patients():
    """Lists patients with their branch name, optionally filtered by branch and search term."""
    search = request.args.get('search')
    branch_id = query_int('branchId')

    query = db.session.query(Patient, Branch.name).outerjoin(
        Branch, Patient.registered_branch == Branch.id
    )
    if branch_id is not None:
        query = query.filter(Patient.registered_branch == branch_id)
    if search:
        pattern = _like_pattern(search)
        query = query.filter(or_(
            Patient.first_name.ilike(pattern, escape='\\'),
            Patient.last_name.ilike(pattern, escape='\\'),
            Patient.id.ilike(pattern, escape='\\'),
            Patient.phone.like(pattern, escape='\\'),
        ))

    try:
        rows = query.order_by(Patient.created_at, Patient.id).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f'Error fetching patients: {e}')
        return jsonify({'error': 'Failed to fetch patients'}), 500

    return jsonify([_serialize_listing(patient, branch_name) for patient, branch_name in rows]), 200

def get_patient(patient_id):
    patient = db.session.get(Patient, patient_id)
    if not patient:
        return jsonify({'error': 'Patient not found'}), 404
    result = patient.to_dict()
    result['branchName'] = patient.branch.name if patient.branch else None
    return jsonify(result), 200

def create_patient():
    """Registers a patient and assigns a branch-prefixed id."""
    data = get_json_body()
    require_fields(data, PATIENT_REQUIRED_FIELDS)

    date_of_birth = parse_date(data['dateOfBirth'], 'dateOfBirth')
    gender = parse_choice(data['gender'], 'gender', GENDERS)
    branch_id = parse_int(data['registeredBranch'], 'registeredBranch')
    is_active = parse_bool(data.get('isActive'), 'isActive', default=True)

    branch = db.session.get(Branch, branch_id)
    if not branch:
        return jsonify({'error': 'Invalid branch'}), 400

    try:
        patient = Patient(
            id=allocate_patient_id(branch),
            first_name=data['firstName'],
            last_name=data['lastName'],
            date_of_birth=date_of_birth,
            gender=gender,
            address=data['address'],
            phone=data['phone'],
            email=data.get('email'),
            emergency_contact_name=data.get('emergencyContactName'),
            emergency_contact_phone=data.get('emergencyContactPhone'),
            emergency_contact_relation=data.get('emergencyContactRelation'),
            registered_branch=branch.id,
            is_active=is_active
        )
        db.session.add(patient)
        db.session.flush()
        record_audit('CREATE', patient)
        db.session.commit()
    except PatientIdUnavailable:
        db.session.rollback()
        current_app.logger.error(f'No free patient id for branch {branch_id}')
        return jsonify({'error': 'Could not allocate a patient id'}), 409
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating patient: {e}')
        return jsonify({'error': 'Failed to create patient'}), 500

    return jsonify(patient.to_dict()), 201
