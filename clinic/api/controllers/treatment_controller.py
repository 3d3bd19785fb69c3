from decimal import Decimal
from flask import request, jsonify, current_app
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.treatment_models import Treatment
from clinic.utils.audit_util import record_audit
from clinic.utils.validation import get_json_body, require_fields, parse_decimal, parse_bool

def get_treatments():
    """Lists the catalog, filtered by exact category and/or active flag."""
    category = request.args.get('category')
    is_active = request.args.get('isActive')

    query = Treatment.query
    if category:
        query = query.filter(Treatment.category == category)
    if is_active is not None:
        query = query.filter(Treatment.is_active == (is_active == 'true'))

    try:
        treatments = query.order_by(Treatment.id).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f'Error fetching treatments: {e}')
        return jsonify({'error': 'Failed to fetch treatments'}), 500

    return jsonify([t.to_dict() for t in treatments]), 200

def create_treatment():
    data = get_json_body()
    require_fields(data, ['serviceCode', 'name', 'price'])
    price = parse_decimal(data['price'], 'price', minimum=Decimal('0'))
    is_active = parse_bool(data.get('isActive'), 'isActive', default=True)

    if Treatment.query.filter_by(service_code=data['serviceCode']).first():
        return jsonify({'error': 'Service code already exists'}), 409

    treatment = Treatment(
        service_code=data['serviceCode'],
        name=data['name'],
        description=data.get('description'),
        price=price,
        category=data.get('category'),
        is_active=is_active
    )

    try:
        db.session.add(treatment)
        db.session.flush()
        record_audit('CREATE', treatment)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error creating treatment: {e}')
        return jsonify({'error': 'Failed to create treatment'}), 500

    return jsonify(treatment.to_dict()), 201
