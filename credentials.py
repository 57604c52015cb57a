import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import generate_password_hash, check_password_hash

from errors import AuthFailure, Conflict, FieldError, StorageError
from models import User

logger = logging.getLogger(__name__)

# checked for unknown usernames so both failure paths do the same hashing work
_DUMMY_HASH = generate_password_hash("not-a-real-password")


def register(db: Session, username, email, password):
    """Create a user; raises Conflict listing every taken field."""
    clashes = []
    if db.query(User).filter(User.username == username).first():
        clashes.append(FieldError("username", "That username has been already taken. Try another one."))
    if db.query(User).filter(User.email == email).first():
        clashes.append(FieldError("email", "The email you entered is already registered."))
    if clashes:
        raise Conflict(clashes)

    user = User(username=username, email=email, password_hash=generate_password_hash(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise Conflict("Username or Email already registered")
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not store user %s", username)
        raise StorageError(f"could not store user: {exc}") from exc

    db.refresh(user)
    logger.info("Registered user %s", username)
    return user


def authenticate(db: Session, username, password):
    """Return the user for valid credentials; AuthFailure otherwise."""
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        check_password_hash(_DUMMY_HASH, password)
        logger.info("Failed login for %s", username)
        raise AuthFailure()
    if not check_password_hash(user.password_hash, password):
        logger.info("Failed login for %s", username)
        raise AuthFailure()
    return user
