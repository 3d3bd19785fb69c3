from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.branch_models import Branch, MedicalStaff
from clinic.models.user_models import User
from clinic.utils.audit_util import record_audit
from clinic.utils.validation import get_json_body, require_fields, parse_int, parse_bool, query_int

def get_staff():
    branch_id = query_int('branchId')
    query = MedicalStaff.query
    if branch_id is not None:
        query = query.filter(MedicalStaff.branch_id == branch_id)
    return jsonify([member.to_dict() for member in query.order_by(MedicalStaff.id).all()]), 200

def create_staff():
    """Creates the staff profile for an existing user at a branch."""
    data = get_json_body()
    require_fields(data, ['userId', 'firstName', 'lastName', 'branchId'])
    branch_id = parse_int(data['branchId'], 'branchId')

    user = db.session.get(User, data['userId'])
    if not user:
        return jsonify({'error': 'Invalid user'}), 400
    if not db.session.get(Branch, branch_id):
        return jsonify({'error': 'Invalid branch'}), 400
    if user.staff_profile:
        return jsonify({'error': 'User already has a staff profile'}), 409

    member = MedicalStaff(
        user_id=user.id,
        first_name=data['firstName'],
        last_name=data['lastName'],
        specialty=data.get('specialty'),
        license_number=data.get('licenseNumber'),
        phone=data.get('phone'),
        email=data.get('email'),
        branch_id=branch_id,
        is_active=parse_bool(data.get('isActive'), 'isActive', default=True)
    )

    try:
        db.session.add(member)
        db.session.flush()
        record_audit('CREATE', member)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating staff member: {e}')
        return jsonify({'error': 'Failed to create staff member'}), 500

    return jsonify(member.to_dict()), 201
