# app/models/organization.py
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Text, JSON, func
from sqlalchemy.sql import expression
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=lambda: f"org_{uuid.uuid4().hex[:12]}")
    name = Column(String(255), nullable=False)

    # IANA zone used to anchor drip phases to local wall-clock time
    time_zone = Column(String(64), nullable=True)

    # Outreach configuration (org admins)
    drip_global_enabled = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    donor_invite_template = Column(Text, nullable=True)  # default body
    donor_invite_templates = Column(JSON, nullable=True)  # phase key -> body
    donor_invite_subjects = Column(JSON, nullable=True)  # phase key -> subject
    frontend_url = Column(String(500), nullable=True)

    # Bumped on every outreach configuration change
    config_version = Column(Integer, nullable=False, default=1, server_default="1")

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    campaigns = relationship("Campaign", back_populates="organization")
