from sqlalchemy import Column, Integer, String, DateTime, Text
from shortlink_app.database.connection import Base


class ShortLinkRow(Base):
    """
    SQL table backing the SQL link store.

    The short code itself is the primary key: the uniqueness check for
    create-if-absent is the PK constraint, enforced by the database.
    """
    __tablename__ = "short_links"

    code = Column(String(10), primary_key=True)
    original_url = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    clicks = Column(Integer, nullable=False, default=0)
    owner_id = Column(String(255), nullable=False, index=True)
