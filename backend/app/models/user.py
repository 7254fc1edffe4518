"""
User model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


class User(Base):
    """Users table"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column("hashed_password", String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    profile_image = Column(String(500), nullable=True)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)
    role = Column(String(20), nullable=False, default="buyer")  # buyer, store_owner, super_admin
    is_active = Column(Boolean, default=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    store = relationship("Store", back_populates="owner", uselist=False)
