"""
Smile assessment quiz models: procedure catalog, question bank and submissions.
"""

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Boolean, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from core.database import Base


class DentalProcedure(Base):
    """A treatment offering that quiz answers point toward."""

    __tablename__ = "dental_procedures"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    timeframe = Column(String(200), nullable=True)
    icon = Column(String(20), nullable=True, default="🦷")
    color_gradient = Column(String(100), nullable=True, default="from-teal-400 to-cyan-500")
    category = Column(String(50), nullable=True)  # cosmetic, orthodontic, restorative, preventive, comfort
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)


class QuizQuestion(Base):
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    subtitle = Column(Text, nullable=True)
    category = Column(String(50), nullable=False)  # goals, current, color, alignment, concerns, health, timeline, experience
    icon = Column(String(20), nullable=True, default="⭐")
    fun_fact = Column(Text, nullable=True)
    is_multi_select = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    options = relationship(
        "QuizOption",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by=lambda: [QuizOption.sort_order, QuizOption.id],
    )


class QuizOption(Base):
    __tablename__ = "quiz_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    emoji = Column(String(20), nullable=True, default="✓")
    points = Column(JSON, nullable=False, default=dict)  # {procedure_key: weight}
    sort_order = Column(Integer, nullable=False, default=0)

    question = relationship("QuizQuestion", back_populates="options")


class QuizSubmission(Base):
    """One completed quiz. Immutable apart from notification_sent."""

    __tablename__ = "quiz_submissions"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    smile_type = Column(String(50), nullable=True)
    smile_type_name = Column(String(100), nullable=True)
    recommendations = Column(JSON, nullable=False, default=list)  # [{"key": ..., "score": ...}]
    timeline = Column(String(255), nullable=True)
    primary_interest = Column(String(255), nullable=True)
    source = Column(String(100), nullable=True)
    utm_source = Column(String(255), nullable=True)
    utm_medium = Column(String(255), nullable=True)
    utm_campaign = Column(String(255), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    notification_sent = Column(Boolean, nullable=False, default=False)

    answers = relationship(
        "QuizAnswer",
        back_populates="submission",
        cascade="all, delete-orphan",
        order_by="QuizAnswer.id",
    )


class QuizAnswer(Base):
    __tablename__ = "quiz_answers"

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("quiz_submissions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("quiz_questions.id"), nullable=False, index=True)
    selected_options = Column(JSON, nullable=False, default=list)  # [option_id, ...]
    option_points = Column(JSON, nullable=False, default=dict)  # {"option_id": {procedure_key: weight}} at submit time

    submission = relationship("QuizSubmission", back_populates="answers")
    question = relationship("QuizQuestion")
