from sqlalchemy import Column, Integer, String, Boolean, DateTime, Text, JSON, ForeignKey, Float
from datetime import datetime
from database import Base


class User(Base):
    """
    Account record. Users are deactivated rather than deleted.
    Subscription columns are written only by the billing service and its webhook.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, nullable=False, index=True)
    hashed_password = Column(String, nullable=False)
    full_name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Email verification; the same code columns carry one-time login codes
    is_email_verified = Column(Boolean, default=False, nullable=False)
    verification_code = Column(String, nullable=True)
    verification_code_expiry = Column(DateTime, nullable=True)

    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expiry = Column(DateTime, nullable=True)

    two_factor_enabled = Column(Boolean, default=False, nullable=False)
    two_factor_secret = Column(String, nullable=True)
    backup_codes = Column(JSON, nullable=True)

    has_completed_onboarding = Column(Boolean, default=False, nullable=False)
    preferences = Column(JSON, nullable=True)

    stripe_customer_id = Column(String, nullable=True, index=True)
    stripe_subscription_id = Column(String, nullable=True)
    plan_type = Column(String, nullable=True)
    plan_interval = Column(String, nullable=True)
    subscription_status = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class Will(Base):
    """A user's will: one content blob plus wizard progress and status."""
    __tablename__ = "wills"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False, default="My Will")
    content = Column(Text, nullable=False, default="")
    status = Column(String, nullable=False, default="draft")  # draft | completed | locked
    template_id = Column(String, nullable=True)
    current_step = Column(String, nullable=False, default="template_selection")
    contact_info = Column(JSON, nullable=True)
    video_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WillDocument(Base):
    """Supporting file attached to a will. file_path is relative to the uploads root."""
    __tablename__ = "will_documents"

    id = Column(Integer, primary_key=True, index=True)
    will_id = Column(Integer, ForeignKey("wills.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    file_name = Column(String, nullable=False)
    file_type = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    file_path = Column(String, nullable=False)
    uploaded_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class WillContact(Base):
    """Beneficiary, executor, witness or other person named in a will."""
    __tablename__ = "will_contacts"

    id = Column(Integer, primary_key=True, index=True)
    will_id = Column(Integer, ForeignKey("wills.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    relationship = Column(String, nullable=True)
    role = Column(String, nullable=False, default="beneficiary")
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    address = Column(String, nullable=True)
    share_percentage = Column(Float, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    date = Column(String, nullable=False)  # YYYY-MM-DD
    time = Column(String, nullable=True)  # HH:MM
    repeat = Column(String, nullable=False, default="never")
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="info")  # info | warning | success
    is_read = Column(Boolean, default=False, nullable=False)
    related_entity_type = Column(String, nullable=True)
    related_entity_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class EnterpriseInquiry(Base):
    """Contact-form submission for the enterprise plan (never routed through checkout)."""
    __tablename__ = "enterprise_inquiries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    company = Column(String, nullable=True)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
