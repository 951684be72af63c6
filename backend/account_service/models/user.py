from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, Float, ForeignKey, JSON, UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from account_service.core.database import Base


class User(Base):
    """
    User model representing account holders.

    Either password_hash is a bcrypt hash, or it is empty and the
    oauth_id/oauth_provider pair identifies a federated identity.
    """
    __tablename__ = "users"
    __table_args__ = (
        UniqueConstraint("oauth_provider", "oauth_id", name="uq_users_oauth_identity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    # Email is unique and indexed for fast lookups during login
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False, default="")
    oauth_id = Column(String, nullable=True)
    oauth_provider = Column(String, nullable=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False, default="")
    phone = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Dependent records share the user's lifecycle
    user_data = relationship(
        "UserData", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    wishlist = relationship(
        "Wishlist", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    cart = relationship(
        "Cart", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )


class UserData(Base):
    __tablename__ = "user_data"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    paid_user = Column(Boolean, nullable=False, default=False)
    valid_till = Column(DateTime(timezone=True), nullable=True)
    rating = Column(Float, nullable=False, default=0.0)
    # Stored as a JSON list; order carries no meaning
    tags_covered = Column(JSON, nullable=False, default=list)

    user = relationship("User", back_populates="user_data")


class Wishlist(Base):
    __tablename__ = "wishlists"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="wishlist")


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    total_amount = Column(Float, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="cart")
