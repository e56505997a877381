from messageboard.db import db, utcnow


class Post(db.Model):
    __tablename__ = "posts"

    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("user_data.id"), nullable=False)
    # Attachment key under "{user_id}/{image_id}"; no object existence is enforced.
    image_id = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    user_data = db.relationship("User", lazy="select")
