"""
Account routes.

Sign-in itself is handled by the external identity provider; this only
records the user it issued so events can reference an owner.
"""

from flask import Blueprint, request, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from eventsnap import db
from eventsnap.models import User

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


def user_to_dict(user):
    return {
        'id': user.id,
        'email': user.email,
        'name': user.name,
        'createdAt': user.created_at.isoformat() if user.created_at else None,
    }


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """
    Create the local user record after the identity provider signs someone up.

    JSON body:
        userId: id issued by the identity provider (required)
        email: email address (required, unique)
        name: display name (optional)
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400
    user_id = str(data.get('userId') or '').strip()
    email = str(data.get('email') or '').strip().lower()
    name = str(data.get('name') or '').strip() or None

    if not user_id or not email:
        return jsonify({'error': 'userId and email are required'}), 400

    try:
        if db.session.get(User, user_id) or User.query.filter_by(email=email).first():
            return jsonify({'error': 'User already exists'}), 409

        user = User(id=user_id, email=email, name=name)
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        current_app.logger.info(f"Signup rejected, user already exists: {email}")
        return jsonify({'error': 'User already exists'}), 409
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Signup error for {email}: {e}")
        return jsonify({'error': 'Failed to create user'}), 500

    current_app.logger.info(f"Created user {user.id}")
    return jsonify({'user': user_to_dict(user)}), 201
