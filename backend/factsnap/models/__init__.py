"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Question is the aggregate root; location, poll and responses hang off it

Design Decisions:
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references and Base.metadata is complete before create_all / autogenerate
"""

from factsnap.models.question import Question, Location  # noqa: F401
from factsnap.models.poll import Poll, PollOption, PollVote  # noqa: F401
from factsnap.models.response import Response  # noqa: F401
from factsnap.models.user import User  # noqa: F401
