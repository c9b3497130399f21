# billing_core/auth.py
"""Password hashing and signed session tokens.

The session token is an itsdangerous timed signature over the user id,
delivered in an HTTP-only, SameSite=Strict cookie and checked on every
request by Flask-Login's request loader.
"""
import logging

from flask import current_app
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import select

from billing_core import bcrypt, db
from .errors import AuthenticationError, ConflictError, ValidationError
from .models import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = 'Invalid credentials'


def hash_password(password):
    return bcrypt.generate_password_hash(password).decode('utf-8')


def check_password(password_hash, password):
    return bcrypt.check_password_hash(password_hash, password)


def _serializer():
    return URLSafeTimedSerializer(
        current_app.config['SECRET_KEY'],
        salt=current_app.config['SESSION_TOKEN_SALT'],
    )


def issue_session_token(user):
    return _serializer().dumps({'userId': user.id})


def read_session_token(token):
    """Return the user id carried by ``token``, or ``None``."""
    if not token:
        return None
    try:
        payload = _serializer().loads(token, max_age=current_app.config['SESSION_TOKEN_MAX_AGE'])
    except SignatureExpired:
        logger.info("Session token expired")
        return None
    except BadSignature:
        logger.info("Session token rejected: bad signature")
        return None
    user_id = payload.get('userId') if isinstance(payload, dict) else None
    return user_id if isinstance(user_id, int) else None


def load_user_from_token(token):
    user_id = read_session_token(token)
    if user_id is None:
        return None
    return db.session.get(User, user_id)


def set_session_cookie(response, user):
    cfg = current_app.config
    response.set_cookie(
        cfg['SESSION_TOKEN_COOKIE'],
        issue_session_token(user),
        max_age=cfg['SESSION_TOKEN_MAX_AGE'],
        httponly=True,
        secure=cfg['TOKEN_COOKIE_SECURE'],
        samesite='Strict',
        path='/',
    )
    return response


def clear_session_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg['SESSION_TOKEN_COOKIE'],
        path='/',
        httponly=True,
        secure=cfg['TOKEN_COOKIE_SECURE'],
        samesite='Strict',
    )
    return response


def find_user(username):
    return db.session.execute(select(User).where(User.username == username)).scalar()


def register_user(username, password, email=None):
    username = (username or '').strip()
    if not username or not password:
        raise ValidationError('Username and password are required')
    if find_user(username):
        raise ConflictError('Username already exists')

    user = User(username=username, password=hash_password(password), email=email or None)
    db.session.add(user)
    db.session.commit()
    logger.info("Registered user %s", username)
    return user


def authenticate(username, password):
    """Return the matching user or raise a single generic error.

    Unknown usernames and wrong passwords are indistinguishable to the
    caller.
    """
    user = find_user((username or '').strip())
    if user is None or not check_password(user.password, password):
        logger.info("Failed login for %r", username)
        raise AuthenticationError(INVALID_CREDENTIALS)
    return user
