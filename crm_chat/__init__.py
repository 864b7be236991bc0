"""Small-business CRM backend with a real-time chat relay."""

__version__ = "0.1.0"
