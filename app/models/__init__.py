from app.models.audit_event import AuditEvent
from app.models.review_assignment import ReviewerAssignment
from app.models.review_comment import ReviewComment
from app.models.review_cycle import ReviewCycle
from app.models.review_form import ReviewForm
from app.models.review_notification import ReviewNotification
from app.models.user import User

__all__ = [ "AuditEvent", "ReviewerAssignment", "ReviewComment",
           "ReviewCycle", "ReviewForm", "ReviewNotification", "User" ]
