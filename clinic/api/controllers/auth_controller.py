from datetime import datetime, timezone
from flask import request, jsonify, current_app
from flask_jwt_extended import (
    create_access_token, create_refresh_token, decode_token,
    get_jwt_identity, get_jwt
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError
from sqlalchemy.exc import SQLAlchemyError
from clinic.extensions import db
from clinic.models.user_models import User, Session, ROLES
from clinic.utils.audit_util import record_audit
from clinic.utils.validation import get_json_body, require_fields, parse_choice

def _open_session(token, user):
    """Stores the session row that keeps ``token`` valid until it expires."""
    claims = decode_token(token)
    session = Session(
        id=claims['jti'],
        user_id=user.id,
        expires_at=datetime.fromtimestamp(claims['exp'], timezone.utc).replace(tzinfo=None)
    )
    db.session.add(session)
    return session

def _revoke(jti):
    session = db.session.get(Session, jti)
    if session and session.is_valid():
        session.revoke()

def register_user():
    """Creates a login account. Only admins reach this endpoint."""
    data = get_json_body()
    require_fields(data, ['username', 'password', 'role'])
    role = parse_choice(data['role'], 'role', ROLES)

    if User.query.filter_by(username=data['username']).first():
        return jsonify({'error': 'Username already exists'}), 409

    user = User(username=data['username'], role=role)
    try:
        user.set_password(data['password'])
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        db.session.add(user)
        db.session.flush()
        record_audit('CREATE', user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error registering user: {e}')
        return jsonify({'error': 'Failed to create user'}), 500

    return jsonify(user.to_dict()), 201

def login_user():
    data = request.get_json(silent=True)
    if not data or not data.get('username') or not data.get('password'):
        return jsonify({'error': 'Username and password required'}), 400

    user = User.query.filter_by(username=data['username']).first()
    if not user or not user.check_password(data['password']):
        return jsonify({'error': 'Invalid credentials'}), 401
    if not user.is_active:
        return jsonify({'error': 'Account deactivated'}), 403

    # The role travels as a claim; the session row is the source of truth for validity.
    access_token = create_access_token(identity=user.id, additional_claims={'role': user.role})
    refresh_token = create_refresh_token(identity=user.id)

    try:
        _open_session(access_token, user)
        _open_session(refresh_token, user)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f'Error opening session: {e}')
        return jsonify({'error': 'Login failed'}), 500

    return jsonify({
        'access_token': access_token,
        'refresh_token': refresh_token,
        'user': user.to_dict()
    }), 200

def logout_user():
    """Revokes the current token and, if supplied, its refresh token."""
    _revoke(get_jwt()['jti'])

    data = request.get_json(silent=True) or {}
    if data.get('refreshToken'):
        try:
            claims = decode_token(data['refreshToken'])
        except (PyJWTError, JWTExtendedException):
            return jsonify({'error': 'Invalid refresh token'}), 400
        if claims.get('sub') == get_jwt_identity():
            _revoke(claims['jti'])

    db.session.commit()
    return jsonify({'message': 'Successfully logged out'}), 200

def refresh_token():
    user = db.session.get(User, get_jwt_identity())
    if not user or not user.is_active:
        return jsonify({'error': 'User not found or inactive'}), 403

    access_token = create_access_token(identity=user.id, additional_claims={'role': user.role})
    _open_session(access_token, user)
    db.session.commit()
    return jsonify({'access_token': access_token}), 200
