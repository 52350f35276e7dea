# models/__init__.py

from .user import User
from .team import Team
from .category import ProgramCategory, MemberCategory
from .participant import Participant
from .program import Program, ProgramJudge
from .assignment import Assignment
from .score import Score
from .settings import PointsSettings, FestSettings
from .published import PublishedResult, TeamStandings
