import sqlalchemy
from sqlalchemy import Column, String
from sqlalchemy.orm import declarative_base
from uuid_extension import uuid7

Base = declarative_base()


def new_id() -> str:
    return str(uuid7())


class BaseModel(Base):
    __abstract__ = True
    id = Column(String, primary_key=True, default=new_id, index=True)
    created_at = Column(
        sqlalchemy.DateTime(timezone=True), server_default=sqlalchemy.func.now(), nullable=False
    )
    updated_at = Column(
        sqlalchemy.DateTime(timezone=True),
        server_default=sqlalchemy.func.now(),
        onupdate=sqlalchemy.func.now(),
        nullable=False,
    )

# Models import this Base; importing them here would be circular.
# app.platform.db.session.init_db imports them before create_all.
