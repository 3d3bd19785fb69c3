from functools import wraps
from flask import request, current_app, jsonify, make_response
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from clinic.extensions import db
from clinic.models.user_models import User

def access_log(action, resource):
    """Writes one line per request to the audit logger, reads included.

    Row-level changes are recorded separately in the audit_log table by the
    controllers; this covers who looked at what.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_id = None
            ip_address = request.remote_addr

            try:
                user_id = get_jwt_identity()
            except RuntimeError:
                # No JWT in this request (login)
                pass

            try:
                response = make_response(f(*args, **kwargs))
            except Exception as e:
                current_app.audit_logger.error(
                    f"Action='{action}', Resource='{resource}', UserID='{user_id}', IP='{ip_address}', "
                    f"Success='False', Details='An error occurred: {str(e)}'"
                )
                raise

            success = response.status_code < 400
            current_app.audit_logger.info(
                f"Action='{action}', Resource='{resource}', UserID='{user_id}', IP='{ip_address}', "
                f"Success='{success}', Status='{response.status_code}'"
            )
            return response

        return decorated_function
    return decorator

def require_role(*roles):
    """Allows the request only for active users holding one of ``roles``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            verify_jwt_in_request()
            user = db.session.get(User, get_jwt_identity())

            if not user or not user.is_active:
                return jsonify({'error': 'User not found or inactive'}), 403

            if user.role not in roles:
                return jsonify({'error': 'Permission denied'}), 403

            return f(*args, **kwargs)
        return decorated_function
    return decorator
