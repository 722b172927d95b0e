from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, JSON, String, Text, UniqueConstraint
from .db import Base


def _uuid() -> str:
	return uuid.uuid4().hex


def _project_fk():
	return Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, index=True)


class CompetitionProject(Base):
	__tablename__ = "competition_projects"
	id = Column(String(32), primary_key=True, default=_uuid)
	user_id = Column(String(128), nullable=True)
	title = Column(String(256), nullable=False)
	course_name = Column(String(256), nullable=False)
	competition_group = Column(String(32), default="professional_1", nullable=False)
	total_hours = Column(Integer, default=16, nullable=False)
	current_stage = Column(String(32), default="preparation", nullable=False)
	status = Column(String(32), default="in_progress", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TeamMember(Base):
	__tablename__ = "team_members"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	name = Column(String(128), nullable=False)
	role = Column(String(128), nullable=False)
	title = Column(String(128), nullable=True)
	experience_years = Column(Integer, nullable=True)
	specialties = Column(JSON, default=list, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TopicAnalysis(Base):
	__tablename__ = "topic_analysis"
	id = Column(String(32), primary_key=True, default=_uuid)
	# One row per project; analyze again replaces it
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	topic_title = Column(String(256), nullable=False)
	topic_description = Column(Text, nullable=False)
	feasibility_score = Column(Float, nullable=False)
	innovation_score = Column(Float, nullable=False)
	competitiveness_score = Column(Float, nullable=False)
	ai_feedback = Column(JSON, nullable=True)
	status = Column(String(32), default="analyzed", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TeachingResource(Base):
	__tablename__ = "teaching_resources"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	resource_type = Column(String(32), nullable=False)
	resource_name = Column(String(256), nullable=False)
	resource_url = Column(Text, nullable=True)
	description = Column(Text, nullable=True)
	status = Column(String(32), default="available", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PlatformTool(Base):
	__tablename__ = "platform_tools"
	__table_args__ = (UniqueConstraint("project_id", "category", "name"),)
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	category = Column(String(32), nullable=False)
	name = Column(String(128), nullable=False)
	description = Column(Text, nullable=True)
	priority = Column(String(16), default="medium", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LessonPlan(Base):
	__tablename__ = "lesson_plans"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	lesson_number = Column(Integer, nullable=False)
	title = Column(String(256), nullable=False)
	objectives = Column(Text, nullable=False)
	duration_minutes = Column(Integer, default=45, nullable=False)
	key_points = Column(JSON, default=list, nullable=False)
	difficult_points = Column(JSON, default=list, nullable=False)
	teaching_methods = Column(JSON, default=list, nullable=False)
	content = Column(JSON, default=dict, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	ai_score = Column(Float, nullable=True)
	ai_feedback = Column(JSON, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class VideoScript(Base):
	__tablename__ = "video_scripts"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	lesson_plan_id = Column(String(32), ForeignKey("lesson_plans.id", ondelete="SET NULL"), nullable=True)
	video_number = Column(Integer, nullable=False)
	title = Column(String(256), nullable=False)
	duration_minutes = Column(Integer, default=45, nullable=False)
	script_content = Column(JSON, default=dict, nullable=False)
	key_moments = Column(JSON, default=list, nullable=False)
	interaction_points = Column(JSON, default=list, nullable=False)
	ideological_points = Column(JSON, default=list, nullable=False)
	tech_integration_points = Column(JSON, default=list, nullable=False)
	ai_suggestions = Column(JSON, nullable=True)
	status = Column(String(32), default="draft", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class ShootingChecklistItem(Base):
	__tablename__ = "shooting_checklist"
	__table_args__ = (UniqueConstraint("project_id", "category", "item"),)
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	category = Column(String(64), nullable=False)
	item = Column(String(256), nullable=False)
	checked = Column(Boolean, default=False, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ImplementationReport(Base):
	__tablename__ = "implementation_reports"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	content = Column(JSON, default=dict, nullable=False)
	word_count = Column(Integer, default=0, nullable=False)
	chart_count = Column(Integer, default=0, nullable=False)
	version = Column(Integer, default=1, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	ai_score = Column(Float, nullable=True)
	ai_feedback = Column(JSON, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class StandardsReview(Base):
	__tablename__ = "standards_review"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	curriculum_standards = Column(Text, nullable=False)
	training_program = Column(Text, nullable=False)
	alignment_score = Column(Float, nullable=False)
	ai_feedback = Column(JSON, nullable=True)
	status = Column(String(32), default="reviewed", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class EvidenceMaterial(Base):
	__tablename__ = "evidence_materials"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	material_type = Column(String(32), nullable=False)
	file_name = Column(String(256), nullable=False)
	file_path = Column(String(512), nullable=False)
	file_size = Column(Integer, nullable=False)
	description = Column(Text, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class FinalEvidence(Base):
	__tablename__ = "final_evidence"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	material_type = Column(String(32), nullable=False)
	file_name = Column(String(256), nullable=False)
	file_path = Column(String(512), nullable=False)
	file_size = Column(Integer, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class PresentationPPT(Base):
	__tablename__ = "presentation_ppt"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	outline = Column(JSON, nullable=True)
	slide_count = Column(Integer, default=20, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TeachingPPT(Base):
	__tablename__ = "teaching_ppt"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	outline = Column(JSON, nullable=True)
	slide_count = Column(Integer, default=30, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class PresentationScript(Base):
	__tablename__ = "presentation_script"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	script_content = Column(JSON, nullable=True)
	estimated_duration = Column(Integer, default=10, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class TeachingScript(Base):
	__tablename__ = "teaching_script"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	script_content = Column(JSON, nullable=True)
	estimated_duration = Column(Integer, default=15, nullable=False)
	status = Column(String(32), default="draft", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class QAPreparation(Base):
	__tablename__ = "qa_preparation"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = Column(String(32), ForeignKey("competition_projects.id", ondelete="CASCADE"), nullable=False, unique=True)
	qa_list = Column(JSON, default=list, nullable=False)
	total_questions = Column(Integer, default=0, nullable=False)
	raw_content = Column(Text, nullable=True)
	status = Column(String(32), default="prepared", nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AIAssessment(Base):
	__tablename__ = "ai_assessments"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	assessment_type = Column(String(64), nullable=False)
	target_id = Column(String(32), nullable=True)
	criteria = Column(JSON, nullable=False)
	score = Column(Float, nullable=False)
	feedback = Column(JSON, nullable=False)
	suggestions = Column(JSON, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ProgressTracking(Base):
	__tablename__ = "progress_tracking"
	__table_args__ = (UniqueConstraint("project_id", "stage", "step"),)
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	stage = Column(String(32), nullable=False)
	step = Column(String(32), nullable=False)
	status = Column(String(32), default="not_started", nullable=False)
	completion_percentage = Column(Integer, default=0, nullable=False)
	notes = Column(Text, nullable=True)
	completed_at = Column(DateTime, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class UploadedFile(Base):
	__tablename__ = "uploaded_files"
	id = Column(String(32), primary_key=True, default=_uuid)
	project_id = _project_fk()
	related_id = Column(String(32), nullable=True)
	file_name = Column(String(256), nullable=False)
	file_path = Column(String(512), nullable=False)
	file_size = Column(Integer, nullable=False)
	file_type = Column(String(32), nullable=False)
	mime_type = Column(String(128), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
