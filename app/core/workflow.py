"""Workflow vocabulary shared by models, schemas and services."""

CYCLE_TYPES = ("6-month", "1-year")

CYCLE_DRAFT = "draft"
CYCLE_ACTIVE = "active"
CYCLE_LOCKED = "locked"
CYCLE_COMPLETED = "completed"
CYCLE_STATUSES = (CYCLE_DRAFT, CYCLE_ACTIVE, CYCLE_LOCKED, CYCLE_COMPLETED)
# forms may only be created/updated, and reviewers assigned, in these states
CYCLE_WRITABLE_STATUSES = (CYCLE_DRAFT, CYCLE_ACTIVE)

REVIEWER_SELF = "self"
REVIEWER_PEER = "peer"
REVIEWER_CLIENT = "client"
REVIEWER_MANAGER = "manager"
REVIEWER_TYPES = (REVIEWER_SELF, REVIEWER_PEER, REVIEWER_CLIENT, REVIEWER_MANAGER)

ASSIGNMENT_PENDING = "pending"
ASSIGNMENT_COMPLETED = "completed"
ASSIGNMENT_OVERDUE = "overdue"
ASSIGNMENT_STATUSES = (ASSIGNMENT_PENDING, ASSIGNMENT_COMPLETED, ASSIGNMENT_OVERDUE)

FORM_PENDING = "pending"
FORM_DRAFT = "draft"
FORM_SUBMITTED = "submitted"
FORM_APPROVED = "approved"
FORM_STATUSES = (FORM_PENDING, FORM_DRAFT, FORM_SUBMITTED, FORM_APPROVED)

NOTIFY_REVIEW_SUBMITTED = "review_submitted"
NOTIFY_DRAFT_SAVED = "draft_saved"
NOTIFY_REVIEW_REQUESTED = "review_requested"
NOTIFY_CYCLE_COMPLETED = "cycle_completed"
NOTIFY_REMINDER = "reminder"
NOTIFICATION_TYPES = (
    NOTIFY_REVIEW_SUBMITTED,
    NOTIFY_DRAFT_SAVED,
    NOTIFY_REVIEW_REQUESTED,
    NOTIFY_CYCLE_COMPLETED,
    NOTIFY_REMINDER,
)

ROLE_ADMIN = "admin"
ROLE_HR = "hr"
ROLE_MANAGER = "manager"
ROLE_EMPLOYEE = "employee"
ROLE_INTERN = "intern"
ROLES = (ROLE_ADMIN, ROLE_HR, ROLE_MANAGER, ROLE_EMPLOYEE, ROLE_INTERN)
PRIVILEGED_ROLES = (ROLE_ADMIN, ROLE_HR)

# fields that must be non-empty before a form can reach submitted
REQUIRED_FOR_SUBMIT = ("overall_rating", "goals_achievement", "strengths", "improvements")


def in_clause(values) -> str:
    """Render a tuple of literals for a CHECK constraint."""
    return "(" + ",".join(f"'{v}'" for v in values) + ")"
