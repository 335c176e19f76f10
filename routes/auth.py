# routes/auth.py
# Session login by personal code (identity itself is managed outside this app)

from flask import Blueprint, request, session, jsonify
from models.user import User # Import the User model

auth_bp = Blueprint('auth', __name__)

@auth_bp.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or request.form
    user_code = data.get('code')
    if not user_code:
        return jsonify({'error': 'Please enter your code.', 'kind': 'validation_error'}), 400

    user = User.query.filter_by(code=user_code).first()
    if not user:
        return jsonify({'error': 'Invalid access code.', 'kind': 'access_denied'}), 401

    # Start from a clean session; judge sessions from another user must not leak
    session.clear()
    session['user_id'] = user.id
    session['user_role'] = user.role
    return jsonify({'id': user.id, 'username': user.username, 'role': user.role})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'status': 'ok'})
