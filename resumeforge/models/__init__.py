from resumeforge.models.base import Base
from resumeforge.models.resume import Resume
from resumeforge.models.user import User

__all__ = [
    "Base",
    "Resume",
    "User",
]
