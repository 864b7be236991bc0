from .base import Base  # noqa: F401
from .user import User  # noqa: F401
from .customer import Customer, CustomerStatus  # noqa: F401
from .user_activity import ActivityType, UserActivity  # noqa: F401
from .chat import ChatMessage, ChatSession, ChatStatus  # noqa: F401
