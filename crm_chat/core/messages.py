"""User-facing error messages and text for the backend."""

# Authentication messages
AUTH_REQUIRED = "Authentication required"
AUTH_TOKEN_REQUIRED = "Authentication token required"
AUTH_TOKEN_INVALID = "Invalid authentication token"
AUTH_TOKEN_PAYLOAD_INVALID = "Invalid token payload"
AUTH_SUBJECT_MISMATCH = "Token does not belong to the given user"
AUTH_INVALID_CREDENTIALS = "Invalid credentials"
AUTH_USER_NOT_FOUND_OR_INACTIVE = "User not found or inactive"
AUTH_INSUFFICIENT_PERMISSIONS = "Insufficient permissions"
AUTH_CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"
AUTH_TOO_MANY_ATTEMPTS = "Too many login attempts. Try again in 15 minutes."

# Registration messages
REG_INVALID_ROLE = "Invalid role"
REG_EMAIL_EXISTS = "Email is already registered"

# Customer messages
CUSTOMER_NOT_FOUND = "Customer not found"

# Chat messages
CHAT_NOT_FOUND = "Chat not found"
CHAT_NOT_FOUND_OR_ACCESS_DENIED = "Chat not found or access denied"
CHAT_ALREADY_CLOSED = "Chat session is already closed"
CHAT_ACCESS_DENIED = "Unauthorized"
CHAT_START_FAILED = "Failed to start chat"
CHAT_SEND_FAILED = "Failed to send message"
CHAT_HISTORY_FAILED = "Failed to fetch chat history"
CHAT_CLOSE_FAILED = "Failed to close chat"
CHAT_INVALID_EVENT = "Invalid event payload"
CHAT_INVALID_JSON = "Invalid JSON format"

# Database messages
DB_OPERATION_FAILED = "Database operation failed"

# General error messages
ERROR_INTERNAL_SERVER = "Internal server error"
ERROR_BAD_REQUEST = "Invalid request"
