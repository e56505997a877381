from messageboard.db import db
from messageboard.models.user_model import User


def get_by_email(email: str):
    return User.query.filter_by(email=email).first()


def get_by_id(user_id: str):
    return db.session.get(User, user_id)


def create_user(email, password_hash):
    user = User(
        email=email,
        password_hash=password_hash,
    )
    db.session.add(user)
    db.session.commit()
    return user
