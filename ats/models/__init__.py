from .user import User
from .vacancy import Vacancy
from .application import Application
from .evaluation import Evaluation
from .assessment import Test, TestAttempt
from .interview import Interview, InterviewerAssignment
from .domain_event import DomainEvent
from .notification import Notification
from .audit_log import AuditLog
# base and mixins are imported by the above as needed
