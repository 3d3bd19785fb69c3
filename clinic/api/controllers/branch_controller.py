from flask import jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.branch_models import Branch
from clinic.utils.audit_util import record_audit
from clinic.utils.validation import get_json_body, require_fields, parse_bool

def get_branches():
    """Returns every branch, unfiltered."""
    try:
        branches = Branch.query.order_by(Branch.id).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f'Error fetching branches: {e}')
        return jsonify({'error': 'Failed to fetch branches'}), 500
    return jsonify([branch.to_dict() for branch in branches]), 200

def create_branch():
    data = get_json_body()
    require_fields(data, ['name', 'location', 'address'])

    branch = Branch(
        name=data['name'],
        location=data['location'],
        address=data['address'],
        phone=data.get('phone'),
        email=data.get('email'),
        operating_hours=data.get('operatingHours') or '08:00-20:00',
        is_active=parse_bool(data.get('isActive'), 'isActive', default=True),
        patient_sequence=0
    )

    try:
        db.session.add(branch)
        db.session.flush()
        record_audit('CREATE', branch)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating branch: {e}')
        return jsonify({'error': 'Failed to create branch'}), 500

    return jsonify(branch.to_dict()), 201
