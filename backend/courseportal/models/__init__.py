"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Status/type columns store the str values of core/domain_types.py enums

Design Decisions:
    - One file per entity for locality
    - All models imported here so SQLAlchemy resolves string-based relationship()
      references before any query runs
"""

from courseportal.models.profile import Profile  # noqa: F401
from courseportal.models.course_category import CourseCategory  # noqa: F401
from courseportal.models.affiliation import Affiliation  # noqa: F401
from courseportal.models.course import Course  # noqa: F401
from courseportal.models.intake import Intake  # noqa: F401
from courseportal.models.enrollment import Enrollment  # noqa: F401
from courseportal.models.payment import Payment  # noqa: F401
from courseportal.models.refund import Refund  # noqa: F401
from courseportal.models.contact_request import ContactRequest  # noqa: F401
from courseportal.models.contact_reply import ContactReply  # noqa: F401
from courseportal.models.email_log import EmailLog  # noqa: F401
from courseportal.models.user_deletion_history import UserDeletionHistory  # noqa: F401
