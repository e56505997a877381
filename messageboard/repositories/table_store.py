"""Row storage over SQLAlchemy with insert/select/delete by table name.

Every committed write is published on the change feed so that live views
can refetch.
"""
import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from messageboard.db import app_scope
from messageboard.errors import PersistenceError


logger = logging.getLogger(__name__)


class TableStore:
    def __init__(self, app, db, models: dict, changes=None):
        self._app = app
        self._db = db
        self._models = dict(models)
        self._changes = changes

    def _model(self, table: str):
        model = self._models.get(table)
        if model is None:
            raise PersistenceError(f"Unknown table: {table}")
        return model

    @staticmethod
    def _columns(model):
        return [column.key for column in inspect(model).column_attrs]

    def _row_to_dict(self, model, record) -> dict:
        return {key: getattr(record, key) for key in self._columns(model)}

    def _publish(self, table: str, event: str, record: dict):
        if self._changes is None:
            return
        self._changes.publish(table, event, record)

    def insert(self, table: str, row: dict):
        model = self._model(table)
        try:
            record = model(**row)
        except TypeError as e:
            raise PersistenceError(str(e)) from e

        with app_scope(self._app):
            session = self._db.session
            session.add(record)
            try:
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.warning("Insert into %s rejected: %s", table, e)
                raise PersistenceError(f"Could not insert into {table}") from e

            payload = self._row_to_dict(model, record)

        logger.info("Inserted row %s into %s", payload.get("id"), table)
        self._publish(table, "INSERT", payload)
        return payload.get("id")

    def select(self, table: str, filters=None, join=None, order_by=None) -> list:
        """Fetch rows as dicts.

        ``join`` maps a relationship name to the columns projected from it,
        e.g. ``{"user_data": ("email",)}``; a missing related row yields None.
        ``order_by`` is a sequence of column names, ``-`` prefixed for
        descending order.
        """
        model = self._model(table)
        join = join or {}
        relationships = inspect(model).relationships

        with app_scope(self._app):
            session = self._db.session
            try:
                query = session.query(model)
                for name in join:
                    if name not in relationships:
                        raise PersistenceError(f"{table} has no relation {name}")
                    query = query.options(joinedload(getattr(model, name)))

                if filters:
                    query = query.filter_by(**filters)

                for key in order_by or ():
                    descending = key.startswith("-")
                    column = getattr(model, key.lstrip("-"), None)
                    if column is None:
                        raise PersistenceError(f"{table} has no column {key.lstrip('-')}")
                    query = query.order_by(column.desc() if descending else column.asc())

                records = query.all()
            except SQLAlchemyError as e:
                session.rollback()
                raise PersistenceError(f"Could not read from {table}") from e

            rows = []
            for record in records:
                row = self._row_to_dict(model, record)
                for name, columns in join.items():
                    related = getattr(record, name)
                    row[name] = (
                        {column: getattr(related, column) for column in columns}
                        if related is not None else None
                    )
                rows.append(row)

        return rows

    def delete(self, table: str, match: dict) -> int:
        if not match:
            raise PersistenceError("Refusing to delete without match criteria")

        model = self._model(table)
        with app_scope(self._app):
            session = self._db.session
            try:
                records = session.query(model).filter_by(**match).all()
                removed = [self._row_to_dict(model, record) for record in records]
                for record in records:
                    session.delete(record)
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                logger.warning("Delete from %s rejected: %s", table, e)
                raise PersistenceError(f"Could not delete from {table}") from e

        for row in removed:
            self._publish(table, "DELETE", row)

        if removed:
            logger.info("Deleted %d row(s) from %s", len(removed), table)
        return len(removed)
