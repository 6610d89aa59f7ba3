from datetime import timezone

from sqlalchemy import JSON, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator

from app.schemas.review_form import KpiScore

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class KpiScoresType(TypeDecorator):
    """
    Ordered list of KPI scores, stored as a JSON array of {name, score}.

    The engine only ever sees list[KpiScore]; conversion happens here at the
    storage edge.
    """

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return [
            (s if isinstance(s, KpiScore) else KpiScore.model_validate(s)).model_dump()
            for s in value
        ]

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        # legacy rows stored a {name: score} object
        if isinstance(value, dict):
            value = [{"name": k, "score": v} for k, v in value.items()]
        return [KpiScore.model_validate(item) for item in value]


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime; naive values read back from SQLite are taken as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
