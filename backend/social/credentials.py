"""
Credential service: password hashing, token issuance, account lifecycle.

Passwords and refresh tokens are hashed with Django's configured hashers.
Tokens are HS256 JWTs carrying a "type" claim ("access" / "refresh"); the
two kinds are signed with different secrets so one can never stand in for
the other. Only the hash of the latest refresh token is kept on the
profile, so issuing a new pair invalidates the previous refresh token.
"""
import logging
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import check_password, make_password
from django.db import IntegrityError, transaction

from .exceptions import ConflictError, UnauthorizedError
from .models import Profile

logger = logging.getLogger(__name__)

User = get_user_model()

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"

USER_FIELDS = ('username', 'email', 'first_name', 'last_name')
PROFILE_FIELDS = ('avatar', 'bio', 'location', 'style', 'language', 'is_private')


class TokenPair:
    def __init__(self, access: str, refresh: str):
        self.access = access
        self.refresh = refresh


def hash_secret(plaintext: str) -> str:
    return make_password(plaintext)


def verify_secret(plaintext: str, hashed: str) -> bool:
    if not hashed:
        return False
    return check_password(plaintext, hashed)


def _secret_for(kind: str) -> str:
    return settings.JWT_REFRESH_SECRET if kind == REFRESH else settings.JWT_SECRET


def _encode(user, kind: str, lifetime: timedelta) -> str:
    payload = {
        "sub": str(user.id),
        "username": user.username,
        "type": kind,
        "jti": uuid.uuid4().hex,
        "exp": datetime.now(timezone.utc) + lifetime,
    }
    return jwt.encode(payload, _secret_for(kind), algorithm=ALGORITHM)


def issue_tokens(user) -> TokenPair:
    """New access/refresh pair; the refresh token's hash replaces the stored one."""
    pair = TokenPair(
        access=_encode(user, ACCESS, timedelta(minutes=settings.JWT_ACCESS_TTL_MINUTES)),
        refresh=_encode(user, REFRESH, timedelta(days=settings.JWT_REFRESH_TTL_DAYS)),
    )
    Profile.objects.filter(user_id=user.id).update(refresh_token_hash=hash_secret(pair.refresh))
    return pair


def decode_token(token: str, kind: str = ACCESS) -> dict:
    try:
        payload = jwt.decode(token, _secret_for(kind), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError('Token has expired')
    except jwt.InvalidTokenError:
        raise UnauthorizedError('Invalid token')
    if payload.get("type") != kind:
        raise UnauthorizedError('Invalid token')
    return payload


def user_from_token(token: str, kind: str = ACCESS):
    payload = decode_token(token, kind)
    user = (
        User.objects
        .select_related('profile')
        .filter(id=payload.get("sub"), is_active=True)
        .first()
    )
    if user is None:
        raise UnauthorizedError('Invalid token')
    return user


def _ensure_unique(username=None, email=None, exclude_id=None) -> None:
    others = User.objects.all()
    if exclude_id is not None:
        others = others.exclude(id=exclude_id)
    if email and others.filter(email__iexact=email).exists():
        raise ConflictError('Email already exists')
    if username and others.filter(username__iexact=username).exists():
        raise ConflictError('Username already exists')


def register(data: dict):
    """
    Create an account and sign it in.

    Returns (user, TokenPair). Conflict on a taken username or e-mail.
    """
    _ensure_unique(data['username'], data['email'])
    try:
        with transaction.atomic():
            user = User.objects.create(
                username=data['username'],
                email=data['email'],
                first_name=data.get('first_name') or '',
                last_name=data.get('last_name') or '',
                password=hash_secret(data['password']),
            )
    except IntegrityError:
        raise ConflictError('Username already exists')

    logger.info("Registered user %s (%s)", user.id, user.username)
    return user, issue_tokens(user)


def login(email: str, password: str):
    user = User.objects.filter(email__iexact=email, is_active=True).first()
    if user is None or not verify_secret(password, user.password):
        raise UnauthorizedError('Invalid credentials')

    user.last_login = datetime.now(timezone.utc)
    user.save(update_fields=['last_login'])
    return user, issue_tokens(user)


def refresh(refresh_token: str) -> TokenPair:
    """Rotate a refresh token. The presented token must be the latest one issued."""
    user = user_from_token(refresh_token, REFRESH)
    if not verify_secret(refresh_token, user.profile.refresh_token_hash):
        raise UnauthorizedError('Invalid refresh token')
    return issue_tokens(user)


def logout(user) -> None:
    Profile.objects.filter(user_id=user.id).update(refresh_token_hash='')


def update_profile(user, data: dict):
    """Partial update of account and profile fields."""
    _ensure_unique(data.get('username'), data.get('email'), exclude_id=user.id)

    user_changes = [field for field in USER_FIELDS if field in data]
    profile_changes = [field for field in PROFILE_FIELDS if field in data]

    profile = user.profile
    for field in user_changes:
        setattr(user, field, data[field])
    for field in profile_changes:
        setattr(profile, field, data[field])

    with transaction.atomic():
        if user_changes:
            user.save(update_fields=user_changes)
        if profile_changes:
            profile.save(update_fields=profile_changes + ['updated_at'])
    return user
