# database.py
from sqlalchemy import (
    create_engine,
    Column,
    Integer,
    String,
    Text,
    DateTime,
    ForeignKey,
    Boolean,
)
from sqlalchemy.orm import sessionmaker, declarative_base
from datetime import datetime

from config import DATABASE_URL

ROLE_ADMIN = 1
ROLE_SUPERVISOR = 4

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True)
    role = Column(Integer, nullable=False, index=True)
    status_deleted = Column(Boolean, default=False, nullable=False)


class BudgetPlan(Base):
    __tablename__ = "rancangan_anggaran_biaya"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    proyek = Column(String)
    pekerjaan = Column(String)
    lokasi = Column(String)
    kontraktor = Column(String)
    supervisi_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    status = Column(String, default="draft", nullable=False)
    status_deleted = Column(Boolean, default=False, nullable=False)
    json_pengeluaran_entertaiment = Column(Text, nullable=True)
    json_pengeluaran_material_tambahan = Column(Text, nullable=True)
    json_pengeluaran_tukang = Column(Text, nullable=True)
    json_kerja_tambah = Column(Text, nullable=True)
    json_pengajuan_harga_tukang = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DeviceToken(Base):
    __tablename__ = "device_tokens"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    device_token = Column(String, unique=True, nullable=False, index=True)
    device_type = Column(String, nullable=True)
    device_id = Column(String, nullable=True)
    device_name = Column(String, nullable=True)
    app_version = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_used_at = Column(DateTime, default=datetime.utcnow)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    type = Column(String, index=True)
    related_id = Column(Integer, nullable=True)
    related_type = Column(String, nullable=True)
    action_url = Column(String, nullable=True)
    priority = Column(String, default="high")
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime, nullable=True)
    data = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
