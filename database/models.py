# database/models.py
from enum import Enum as PyEnum
from sqlalchemy import (
    Column, String, Text, Integer, ForeignKey, Index, Numeric, DateTime)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.db import Base


class FileKind(PyEnum):
    CSV = "CSV"
    EXCEL = "Excel"


# ---------- owners --------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    mobile = Column(String(32), unique=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    uploads = relationship("Upload", back_populates="user")


# ---------- upload history ------------------------------------------------
class Upload(Base):
    __tablename__ = "uploads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)       # name on disk
    original_name = Column(String(255), nullable=False)  # name the client sent
    file_type = Column(String(16), nullable=False)       # FileKind value
    row_count = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="uploads")
    # buyers are removed explicitly before their upload, see UploadCRUD.delete_upload
    buyers = relationship("Buyer", back_populates="upload", passive_deletes="all")

    def __repr__(self):
        return f"<Upload {self.original_name} - {self.row_count} rows>"


# ---------- buyers --------------------------------------------------------
class Buyer(Base):
    __tablename__ = "buyers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    upload_id = Column(Integer, ForeignKey("uploads.id"), nullable=False)

    name = Column(String(1000), nullable=False)
    email = Column(String(1000), nullable=False)
    mobile = Column(String(1000), nullable=False)
    address = Column(Text, nullable=False, default="")

    total_invoice = Column(Numeric(12, 2), nullable=False, default=0)
    amount_paid = Column(Numeric(12, 2), nullable=False, default=0)
    amount_due = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime, server_default=func.now())

    upload = relationship("Upload", back_populates="buyers")

    __table_args__ = (
        Index("ix_buyers_user_upload", "user_id", "upload_id"),
    )
