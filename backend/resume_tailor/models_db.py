import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    Text,
    ForeignKey,
    DateTime,
    Date,
    Boolean,
    Numeric,
    func,
    JSON,
    Index,
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.ext.asyncio import AsyncAttrs

# Define the base class for declarative models with AsyncAttrs for proper async support
Base = declarative_base(cls=AsyncAttrs)

def generate_uuid():
    return str(uuid.uuid4())

def utc_now():
    return datetime.now(timezone.utc)

class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=generate_uuid)
    external_id = Column(String, unique=True, index=True, nullable=True)
    email = Column(String, index=True, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    profile = relationship("Profile", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    settings = relationship("UserSettings", back_populates="user", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    job_history = relationship("JobHistory", back_populates="user", cascade="all, delete-orphan", passive_deletes=True)

class Profile(Base):
    __tablename__ = "profiles"
    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=False)
    location = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, server_default=func.now())

    user = relationship("User", back_populates="profile")
    work_experiences = relationship(
        "WorkExperience",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="WorkExperience.start_date.desc()",
    )
    educations = relationship(
        "Education",
        back_populates="profile",
        cascade="all, delete-orphan",
        order_by="Education.start_date.desc()",
    )

class WorkExperience(Base):
    __tablename__ = "work_experiences"
    id = Column(String, primary_key=True, default=generate_uuid)
    profile_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    company = Column(String, nullable=False)
    position = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_current = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())

    profile = relationship("Profile", back_populates="work_experiences")

    __table_args__ = (
        Index('ix_work_experiences_profile_start', 'profile_id', 'start_date'),
    )

class Education(Base):
    __tablename__ = "educations"
    id = Column(String, primary_key=True, default=generate_uuid)
    profile_id = Column(String, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    university = Column(String, nullable=False)
    degree = Column(String, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())

    profile = relationship("Profile", back_populates="educations")

    __table_args__ = (
        Index('ix_educations_profile_start', 'profile_id', 'start_date'),
    )

class UserSettings(Base):
    __tablename__ = "user_settings"
    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    openai_key = Column(String, nullable=True)
    anthropic_key = Column(String, nullable=True)
    preferred_ai = Column(String, default="openai", nullable=False)  # 'openai' or 'anthropic'
    created_at = Column(DateTime(timezone=True), default=utc_now, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, server_default=func.now())

    user = relationship("User", back_populates="settings")

class JobHistory(Base):
    __tablename__ = "job_history"
    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    company_name = Column(String, nullable=False, index=True)
    role = Column(String, nullable=False, index=True)
    job_description = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)

    user = relationship("User", back_populates="job_history")
    resumes = relationship(
        "ResumeHistory",
        back_populates="job_history",
        cascade="all, delete-orphan",
        order_by="ResumeHistory.created_at.desc()",
    )

    __table_args__ = (
        Index('ix_job_history_user_created', 'user_id', 'created_at'),
    )

class ResumeHistory(Base):
    __tablename__ = "resume_history"
    id = Column(String, primary_key=True, default=generate_uuid)
    job_history_id = Column(String, ForeignKey("job_history.id", ondelete="CASCADE"), nullable=False, index=True)
    resume_data = Column(JSON, nullable=False)
    generation_cost = Column(Numeric(10, 3), nullable=True)
    ai_provider = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, index=True)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    job_history = relationship("JobHistory", back_populates="resumes")
