from flask import jsonify
from flask_jwt_extended import get_jwt_identity
from clinic.extensions import db
from clinic.models.user_models import User


def get_current_user_details():
    """
    Get details for the currently authenticated user.
    """
    user = db.session.get(User, get_jwt_identity())

    if not user:
        return jsonify({"error": "User not found"}), 404

    return jsonify(user.to_dict()), 200
