from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ExperienceItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str | None = None
    organization: str | None = None
    location: str | None = None
    start: str | None = None
    end: str | None = None
    description: str | None = None


class EducationItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    institution: str | None = None
    degree: str | None = None
    field_of_study: str | None = None
    start: str | None = None
    end: str | None = None
    grade: str | None = None


class ProjectItem(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str | None = None
    description: str | None = None
    link: str | None = None


class ResumeContent(BaseModel):
    """Resume sections consumed by the PDF template.

    Unknown keys are kept so clients can store sections the template does
    not render yet. ``skills`` is a list of strings or one comma-separated
    string.
    """

    model_config = ConfigDict(extra="allow")

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    website: str | None = None
    linkedin: str | None = None
    github: str | None = None
    summary: str | None = None

    experience: list[ExperienceItem] = Field(default_factory=list)
    education: list[EducationItem] = Field(default_factory=list)
    projects: list[ProjectItem] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, value):
        # "Python, SQL" -> ["Python", "SQL"]
        if isinstance(value, str):
            return [skill.strip() for skill in value.split(",") if skill.strip()]
        return value


class UserRef(BaseModel):
    email: str


class SaveResumeRequest(BaseModel):
    user: UserRef
    resume: dict[str, Any]


class SaveResumeResponse(BaseModel):
    status: str = "ok"


class GetResumeRequest(BaseModel):
    email: str


class RenderAcceptedResponse(BaseModel):
    handle: str
    status: str = "rendered"
    message: str = "Resume rendered. Download it from GET /api/v1/resume/artifacts/{handle}."
