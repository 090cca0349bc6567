from .user import User  # noqa: F401
from .issue import Issue, IssueTimelineEntry, IssueUpvote, PRIORITY_ORDER  # noqa: F401
from .payment import Payment, PAYMENT_TYPES, PAYMENT_TYPES_ALIASES  # noqa: F401
from .notification import Notification  # noqa: F401
from .message import Message, MessageReply  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
from .webhook_event import WebhookEvent  # noqa: F401
from .idempotency_key import IdempotencyKey  # noqa: F401
