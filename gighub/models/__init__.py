"""
GigHub SQLAlchemy Models
=============================

Central import point for all ORM models. Import ``Base`` from here for
Alembic auto-generation and for the ``create_all`` convenience in tests.

Usage::

    from gighub.models import Base, User, Gig, Proposal
"""

# -- Base & Mixins --
from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# -- Users --
from .user import User, UserStatus, UserType

# -- Gigs --
from .gig import Gig, GigStatus

# -- Monetization --
from .plan import (
    UNLIMITED,
    ContactUnlock,
    PlanLimit,
    QuotaAction,
    ResetPeriod,
    UsageRecord,
    UserSubscription,
)

# -- Proposals --
from .proposal import Proposal, ProposalStatus, ProposalTemplate

# -- Conversations --
from .conversation import Conversation, ConversationStatus, Message, MessageType

# -- Job completions --
from .completion import CompletionStatus, JobCompletion

# -- Wallet --
from .wallet import (
    Transaction,
    TransactionCategory,
    TransactionStatus,
    TransactionType,
)

# -- Notifications --
from .notification import (
    DevicePlatform,
    DeviceToken,
    Notification,
    NotificationPreference,
    NotificationType,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    # Users
    "User",
    "UserStatus",
    "UserType",
    # Gigs
    "Gig",
    "GigStatus",
    # Monetization
    "UNLIMITED",
    "PlanLimit",
    "QuotaAction",
    "ResetPeriod",
    "UsageRecord",
    "ContactUnlock",
    "UserSubscription",
    # Proposals
    "Proposal",
    "ProposalStatus",
    "ProposalTemplate",
    # Conversations
    "Conversation",
    "ConversationStatus",
    "Message",
    "MessageType",
    # Completions
    "JobCompletion",
    "CompletionStatus",
    # Wallet
    "Transaction",
    "TransactionCategory",
    "TransactionStatus",
    "TransactionType",
    # Notifications
    "DeviceToken",
    "DevicePlatform",
    "Notification",
    "NotificationType",
    "NotificationPreference",
]
