from extensions import db
from models.user import User
from utils.password_utils import hash_password, verify_password
from utils.seed_data import ROLE_STUDENT, ROLE_TEACHER


def authenticate_user(username: str, password: str):
    user = User.query.filter_by(username=username).first()

    if not user:
        return None

    if not verify_password(password, user.password_hash):
        return None

    if user.is_active is False:
        return None

    return user


def register_user(username: str, email: str, password: str, role: str):
    """Create a user; returns (user, error) where error names the clash."""
    if User.query.filter_by(username=username).first():
        return None, f"Username {username} is already taken"
    if User.query.filter_by(email=email).first():
        return None, f"Email {email} is already registered"

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role_id=ROLE_TEACHER if role == "TEACHER" else ROLE_STUDENT,
        is_active=True
    )
    db.session.add(user)
    db.session.commit()
    return user, None
