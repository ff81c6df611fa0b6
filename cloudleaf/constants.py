"""
Constants for CloudLeaf.

Defaults, remote endpoints, status code tables and the user-facing
error messages shared by the providers and the sync engine.
"""

# Network timeouts (in seconds)
DEFAULT_REQUEST_TIMEOUT = 30

# Storage defaults
DEFAULT_FILENAME = "CloudLeaf.json"
DEFAULT_WEBDAV_FILEPATH = "/CloudLeaf/CloudLeaf.json"

# GitHub Gist API
GIST_BASE_URL = "https://api.github.com"
GIST_PATH = "/gists"
GIST_USER_PATH = "/user"
GIST_API_VERSION = "2022-11-28"

# Priority used when a source does not set one
LOWEST_PRIORITY = 2 ** 53 - 1

# HTTP status codes (RFC 7231)
HTTP_OK = 200
HTTP_CREATED = 201
HTTP_NO_CONTENT = 204
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_METHOD_NOT_ALLOWED = 405
HTTP_INTERNAL_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502
HTTP_SERVICE_UNAVAILABLE = 503
HTTP_GATEWAY_TIMEOUT = 504

# WebDAV extension status codes (RFC 4918)
WEBDAV_MULTI_STATUS = 207
WEBDAV_CONFLICT = 409
WEBDAV_PRECONDITION_FAILED = 412
WEBDAV_UNSUPPORTED_MEDIA_TYPE = 415
WEBDAV_LOCKED = 423
WEBDAV_INSUFFICIENT_STORAGE = 507

HTTP_STATUS_MESSAGES = {
    HTTP_BAD_REQUEST: "Bad request",
    HTTP_UNAUTHORIZED: "Authentication failed: invalid credentials",
    HTTP_FORBIDDEN: "Permission denied: access forbidden",
    HTTP_NOT_FOUND: "Resource not found",
    HTTP_METHOD_NOT_ALLOWED: "Method not allowed",
    HTTP_INTERNAL_SERVER_ERROR: "Internal server error",
    HTTP_BAD_GATEWAY: "Bad gateway",
    HTTP_SERVICE_UNAVAILABLE: "Service temporarily unavailable",
    HTTP_GATEWAY_TIMEOUT: "Gateway timeout",
}

WEBDAV_STATUS_MESSAGES = {
    WEBDAV_MULTI_STATUS: "Multi-status response",
    WEBDAV_CONFLICT: "Conflict: parent directory may not exist",
    WEBDAV_PRECONDITION_FAILED: "Precondition failed",
    WEBDAV_UNSUPPORTED_MEDIA_TYPE: "Unsupported media type",
    WEBDAV_LOCKED: "Resource is locked",
    WEBDAV_INSUFFICIENT_STORAGE: "Insufficient storage",
}

# Error messages (Result.error)
ERROR_TIMEOUT = "Request timed out"
ERROR_NETWORK = "Network error: {detail}"
ERROR_UNKNOWN = "Unknown network error"
ERROR_REQUEST_FAILED = "Request failed: {status}"
ERROR_INVALID_TOKEN = "Invalid token"
ERROR_GIST_FILE_NOT_FOUND = "File {file_name} not found"
ERROR_NOT_UPLOADED = "File not found: upload bookmarks first"
ERROR_INVALID_FORMAT = "Invalid file format: missing 'bookmarks' field"
ERROR_INVALID_JSON = "Invalid file format: cannot parse JSON"
ERROR_NO_FILE_SELECTED = "No file selected"
ERROR_CANCELED = "File selection canceled"
ERROR_PARSE_FAILED = "Failed to parse file"
ERROR_INVALID_DATA = "Invalid bookmark data"
ERROR_UPLOAD_FAILED = "Upload failed"
ERROR_DOWNLOAD_FAILED = "Download failed"
ERROR_ALL_PROVIDERS_FAILED = "All providers failed"
ERROR_NO_SYNC_SOURCE = "No available sync source"
ERROR_SYNC_STATUS_CHECK = "Sync status check failed for {name}"
ERROR_EXPORT_FAILED = "Export failed"
ERROR_IMPORT_FAILED = "Import failed"
