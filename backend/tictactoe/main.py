from urllib.parse import urlencode

from flask import Blueprint, current_app, jsonify, redirect, request, session
from flask_login import current_user, login_required, login_user, logout_user

from . import limiter
from .identity import resolve_identity
from .models import User

main = Blueprint('main', __name__)


def auth_rate_limit():
    return current_app.config.get('AUTH_RATE_LIMIT', '10 per minute')


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the tic-tac-toe room server!'})


@main.route('/auth/callback')
@limiter.limit(auth_rate_limit)
def auth_callback():
    """Log in the user resolved by the external identity provider."""
    identity = resolve_identity(request)
    user = User.from_dict(identity)
    if user is None:
        return redirect('/')
    session['identity'] = user.to_dict()
    login_user(user)
    current_app.logger.info(f"[login] user={user.id} name={user.display_name}")
    query = urlencode({'user': user.display_name, 'avatar': user.avatar_url or '', 'id': user.id})
    return redirect(f"/?{query}")


@main.route('/auth/me')
@limiter.limit(auth_rate_limit)
@login_required
def me():
    return jsonify({'success': True, 'user': current_user.to_dict()})


@main.route('/logout')
def logout():
    logout_user()
    session.pop('identity', None)
    return redirect('/')
