from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from enum import Enum


class AIProvider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


# --- Profile ---

class ProfileUpdate(BaseModel):
    name: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    phone: str = ""
    location: str = ""

class WorkExperienceIn(BaseModel):
    company: str = Field(..., min_length=1)
    position: str = Field(..., min_length=1)
    start_date: date
    end_date: Optional[date] = None
    is_current: bool = False

    @model_validator(mode='after')
    def check_dates(self):
        if self.is_current:
            self.end_date = None
        elif self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class WorkExperienceOut(WorkExperienceIn):
    id: str

    class Config:
        from_attributes = True

class EducationIn(BaseModel):
    university: str = Field(..., min_length=1)
    degree: str = Field(..., min_length=1)
    start_date: date
    end_date: date

    @model_validator(mode='after')
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

class EducationOut(EducationIn):
    id: str

    class Config:
        from_attributes = True

class ProfileOut(BaseModel):
    id: str
    name: str
    email: str
    phone: str
    location: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    work_experiences: List[WorkExperienceOut] = []
    educations: List[EducationOut] = []

    class Config:
        from_attributes = True


# --- Settings ---

class SettingsUpdate(BaseModel):
    openai_key: Optional[str] = None
    anthropic_key: Optional[str] = None
    preferred_ai: AIProvider = AIProvider.OPENAI

    @field_validator('openai_key', 'anthropic_key', mode='before')
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

class SettingsOut(BaseModel):
    preferred_ai: AIProvider = AIProvider.OPENAI
    openai_key: Optional[str] = None  # masked
    anthropic_key: Optional[str] = None  # masked
    has_openai_key: bool = False
    has_anthropic_key: bool = False

class ValidateKeyRequest(BaseModel):
    provider: AIProvider
    api_key: str = Field(..., min_length=1)

class ValidationResult(BaseModel):
    is_valid: bool
    error: Optional[str] = None
    model: Optional[str] = None
    estimated_cost: Optional[float] = None


# --- Generated resume (wire format is camelCase, matching the frontend) ---

class PersonalInfo(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    location: str = ""

class GeneratedWorkExperience(BaseModel):
    company: str
    position: str
    startDate: Optional[str] = None
    endDate: Optional[str] = None
    isCurrent: bool = False
    achievements: List[str] = []

class GeneratedEducation(BaseModel):
    university: str
    degree: str
    startDate: Optional[str] = None
    endDate: Optional[str] = None

class GeneratedResume(BaseModel):
    professionalTitle: str
    professionalSummary: str
    workExperiences: List[GeneratedWorkExperience] = []
    technicalSkills: List[str] = []
    personalInfo: PersonalInfo = Field(default_factory=PersonalInfo)
    educations: List[GeneratedEducation] = []

class GenerateResumeRequest(BaseModel):
    jobDescription: str = ""


# --- History ---

class GenerateForJobRequest(BaseModel):
    company_name: str = ""
    role: str = ""
    job_description: str = ""
    note: Optional[str] = None

class GenerateForJobResponse(BaseModel):
    job_history_id: str
    resume_record_id: Optional[str] = None
    ai_provider: AIProvider
    generation_cost: Optional[float] = None
    resume: GeneratedResume

class ResumeRecordOut(BaseModel):
    id: str
    job_history_id: str
    resume_data: GeneratedResume
    generation_cost: Optional[Decimal] = None
    ai_provider: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class JobHistoryOut(BaseModel):
    id: str
    company_name: str
    role: str
    job_description: str
    note: Optional[str] = None
    created_at: Optional[datetime] = None
    resumes: List[ResumeRecordOut] = []

    class Config:
        from_attributes = True

class JobHistoryPage(BaseModel):
    items: List[JobHistoryOut]
    page: int
    per_page: int
    total_items: int
    total_pages: int

class JobHistoryNoteUpdate(BaseModel):
    note: Optional[str] = None

class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(..., min_length=1)

class CostEstimate(BaseModel):
    provider: AIProvider
    job_description_length: int
    work_experience_count: int
    estimated_cost: float
    cost_level: str  # "low" | "medium" | "high"


# --- Admin ---

class AdminUserSummary(BaseModel):
    profile_id: str
    user_id: str
    name: str
    email: str
    created_at: Optional[datetime] = None
    work_experience_count: int = 0
    education_count: int = 0
    job_application_count: int = 0
    resume_count: int = 0

class AdminUserDetail(BaseModel):
    profile: ProfileOut
    job_history: List[JobHistoryOut] = []
    settings: Optional[SettingsOut] = None
    total_generation_cost: float = 0.0
