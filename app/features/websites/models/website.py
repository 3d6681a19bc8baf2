from sqlalchemy import Column, String

from app.platform.db.base import BaseModel


class Website(BaseModel):
    """A site registered for accessibility scanning. url is the base URL scanned by default."""
    __tablename__ = "websites"

    url = Column(String, nullable=False, index=True)
    name = Column(String, nullable=True)
