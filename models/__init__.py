# models/__init__.py
# Model registry

from .user import User
from .project import Project
from .contest import Contest
from .submission import ContestSubmission
from .judge import ContestJudge
from .score import ContestScore
