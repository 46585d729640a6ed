from sqlalchemy import BigInteger
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator, Integer

Base = declarative_base()


class ByteCountType(TypeDecorator):
    """Byte counters outgrow 32 bits on Postgres. SQLite INTEGER is already 64-bit."""

    impl = Integer
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(BigInteger())
        return dialect.type_descriptor(Integer())
