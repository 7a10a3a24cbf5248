"""High-value constants for the MCP bridge package."""

# Package metadata
PACKAGE_VERSION = "1.0.0"
SERVER_NAME = "mcp-bridge"
USER_AGENT = f"{SERVER_NAME}/{PACKAGE_VERSION}"

# External API contract consts
JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2024-11-05"
CONTENT_TYPE = "application/json"
ACCEPT = "application/json, text/event-stream"

# Servers disagree on the case of the session header, so all three are read
SESSION_HEADER_VARIANTS = ("mcp-session-id", "Mcp-Session-Id", "MCP-Session-ID")
SESSION_HEADER = "Mcp-Session-Id"

METHOD_INITIALIZE = "initialize"
METHOD_LIST_TOOLS = "tools/list"
METHOD_CALL_TOOL = "tools/call"

# Provider contract consts
NOTION_VERSION = "2022-06-28"
NOTION_WHOAMI_URL = "https://api.notion.com/v1/users/me"
N8N_API_KEY_HEADER = "X-N8N-API-KEY"

# Token shapes
INTEGRATION_TOKEN_PREFIXES = ("ntn_", "secret_")
BEARER_PREFIX = "Bearer "
OAUTH_TOKEN_MIN_LENGTH = 80  # OAuth tokens carry no prefix but run long

# Business logic consts
MIN_REQUEST_INTERVAL_SECONDS = 0.35  # keeps sustained rate under 3 req/s
MAX_ATTEMPTS = 5
RETRY_BASE_DELAY_SECONDS = 1.0
RETRY_MAX_DELAY_SECONDS = 30.0
BODY_EXCERPT_LENGTH = 500
