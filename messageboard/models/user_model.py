import uuid

from messageboard.db import db, utcnow


def _new_user_id():
    return str(uuid.uuid4())


class User(db.Model):
    __tablename__ = "user_data"

    id = db.Column(db.String(36), primary_key=True, default=_new_user_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
        }
