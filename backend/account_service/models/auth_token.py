from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from account_service.core.database import Base


class AuthToken(Base):
    """
    Token Store row: an issued session token and the role it grants.

    The subject is not stored here; it is read back from the token's
    signed ``sub`` claim. Deleting the row is what logs a session out.
    """
    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(Text, unique=True, nullable=False)
    role = Column(String, nullable=False, default="User")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    # Mirrors the token's exp claim so expired rows can be purged
    expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
