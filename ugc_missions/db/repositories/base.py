from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


class Repository:
    """Repositories only flush; the calling service owns the commit (see ``unit_of_work``)."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def save(self, obj):
        self.session.add(obj)
        self.session.flush()
        return obj

    def insert_ignoring_conflicts(self, model):
        """Dialect-native ``INSERT ... ON CONFLICT DO NOTHING`` statement for ``model``."""
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise RuntimeError(f"Idempotent inserts are not supported on dialect {dialect!r}")
