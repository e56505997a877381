from contextlib import contextmanager
from datetime import datetime, timezone

from flask import has_app_context
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def utcnow():
    # Naive UTC, so stored values compare with the naive datetimes SQLite returns.
    return datetime.now(timezone.utc).replace(tzinfo=None)


@contextmanager
def app_scope(app):
    """Run inside an application context, pushing one only when none is active.

    Change-feed callbacks arrive on a listener thread with no context of their
    own, while request handlers already have one.
    """
    if has_app_context():
        yield
        return

    with app.app_context():
        yield
