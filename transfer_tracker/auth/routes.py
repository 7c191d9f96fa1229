from flask import current_app, jsonify, session
from flask_login import current_user, login_user, logout_user, login_required
from flask_wtf.csrf import generate_csrf

from transfer_tracker.auth import bp
from transfer_tracker.auth.forms import LoginForm
from transfer_tracker.errors import Unauthenticated, ValidationError
from transfer_tracker.extensions import limiter
from transfer_tracker.models import User
from transfer_tracker.utils import form_error


@bp.route('/login', methods=['POST'])
@limiter.limit("5 per 15 minutes")  # Protect against brute force
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        raise ValidationError(form_error(form))

    user = User.query.filter_by(username=form.username.data).first()
    if user is None or not user.check_password(form.password.data):
        current_app.logger.info(f'Failed login for {form.username.data!r}')
        raise Unauthenticated('Invalid credentials')

    session.permanent = True
    login_user(user, remember=form.remember_me.data)
    current_app.logger.info(f'User {user.username} logged in')
    return jsonify({'success': True, 'user': user.to_dict()})


@bp.route('/logout', methods=['POST'])
def logout():
    logout_user()
    return jsonify({'success': True})


@bp.route('/me', methods=['GET'])
@login_required
def me():
    """Current location, as loaded from the database for this request."""
    return jsonify({'user': current_user.to_dict()})


@bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token to send back in the X-CSRFToken header on writes."""
    return jsonify({'csrfToken': generate_csrf()})
