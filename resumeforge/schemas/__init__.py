from resumeforge.schemas.auth import (
    CredentialRequest,
    IdentityAssertion,
    LoginResponse,
    SessionClaims,
    SignupResponse,
    UserPayload,
    VerifyTokenRequest,
    VerifyTokenResponse,
)
from resumeforge.schemas.resume import (
    EducationItem,
    ExperienceItem,
    GetResumeRequest,
    ProjectItem,
    RenderAcceptedResponse,
    ResumeContent,
    SaveResumeRequest,
    SaveResumeResponse,
    UserRef,
)

__all__ = [
    "CredentialRequest",
    "IdentityAssertion",
    "LoginResponse",
    "SessionClaims",
    "SignupResponse",
    "UserPayload",
    "VerifyTokenRequest",
    "VerifyTokenResponse",
    "EducationItem",
    "ExperienceItem",
    "GetResumeRequest",
    "ProjectItem",
    "RenderAcceptedResponse",
    "ResumeContent",
    "SaveResumeRequest",
    "SaveResumeResponse",
    "UserRef",
]
