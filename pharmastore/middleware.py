"""Middleware for authentication and pharmacy context."""
from functools import wraps
from flask import session, g, current_app
from sqlalchemy.exc import SQLAlchemyError
from pharmastore.database import get_session
from pharmastore.models import AppUser, Pharmacy, PharmacyMember, MemberRole
from pharmastore.exceptions import UnauthorizedError, AccessDeniedError

ROLE_HIERARCHY = {MemberRole.OWNER.value: 2, MemberRole.STAFF.value: 1}


def load_user_and_pharmacy():
    """
    Load current user and staff pharmacy into g.

    Called before each request. Sets g.user, g.pharmacy_id and g.user_role
    from the Flask session. g.pharmacy_id is only set for an active member of
    an active, non-suspended pharmacy.
    """
    g.user = None
    g.pharmacy_id = None
    g.user_role = None

    user_id = session.get('user_id')
    if not user_id:
        return

    try:
        db_session = get_session()
        user = db_session.query(AppUser).filter_by(id=user_id, active=True).first()
        if not user:
            return
        g.user = user

        pharmacy_id = session.get('pharmacy_id')
        if not pharmacy_id:
            return

        member = (
            db_session.query(PharmacyMember)
            .join(Pharmacy, Pharmacy.id == PharmacyMember.pharmacy_id)
            .filter(
                PharmacyMember.user_id == user.id,
                PharmacyMember.pharmacy_id == pharmacy_id,
                PharmacyMember.active.is_(True),
                Pharmacy.active.is_(True),
                Pharmacy.is_suspended.is_(False)
            )
            .first()
        )
        if member:
            g.pharmacy_id = member.pharmacy_id
            g.user_role = member.role
        else:
            # No (longer) access to this pharmacy
            session.pop('pharmacy_id', None)
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error in load_user_and_pharmacy: {e}")


def require_login(f):
    """Decorator: reject anonymous requests with 401."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            raise UnauthorizedError()
        return f(*args, **kwargs)
    return decorated_function


def require_pharmacy(f):
    """
    Decorator: require a staff pharmacy context.

    Must be used AFTER require_login.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('pharmacy_id') is None:
            raise AccessDeniedError('A pharmacy staff context is required')
        return f(*args, **kwargs)
    return decorated_function


def require_role(min_role='STAFF'):
    """
    Decorator: require a minimum staff role (OWNER > STAFF).

    Must be used AFTER require_login and require_pharmacy.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user_level = ROLE_HIERARCHY.get(g.get('user_role'), 0)
            if user_level < ROLE_HIERARCHY.get(min_role, 1):
                raise AccessDeniedError(f'{min_role} role required')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
