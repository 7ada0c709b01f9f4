"""
Constants for the NotebookLM batchexecute transport.

This module is the single source of truth for wire-level constants: endpoint
paths, fallback session parameters, fixed headers and the RPC identifiers the
operation registry is built from.
"""

# =============================================================================
# Endpoints
# =============================================================================
BASE_URL = "https://notebooklm.google.com"
DATA_PATH = "/_/LabsTailwindUi/data"
DATA_URL = f"{BASE_URL}{DATA_PATH}"

BATCHEXECUTE_ROUTE = "/batchexecute"
# Streaming gRPC-style endpoint (not routed through batchexecute)
ORCHESTRATION_SERVICE = "google.internal.labs.tailwind.orchestration.v1.LabsTailwindOrchestrationService"
GENERATE_FREE_FORM_STREAMED_ROUTE = f"/{ORCHESTRATION_SERVICE}/GenerateFreeFormStreamed"

# =============================================================================
# Session Parameters
# =============================================================================
# Fallbacks used when neither an override nor the page yields a value
DEFAULT_BUILD_VERSION = "boq_labs-tailwind-frontend_20251120.08_p0"
DEFAULT_SESSION_ID = "-8913782897795119716"

# _reqid of the first request in a process
REQUEST_ID_SEED = 1_000_001

# =============================================================================
# Response Framing
# =============================================================================
ANTI_HIJACK_PREFIX = ")]}'"
ENVELOPE_TAG = "wrb.fr"
RPC_ERROR_AUTH_EXPIRED = 16

# =============================================================================
# Headers
# =============================================================================
USER_AGENT = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"

RPC_HEADERS = {
    "Content-Type": "application/x-www-form-urlencoded;charset=UTF-8",
    "Origin": BASE_URL,
    "Referer": f"{BASE_URL}/",
    "X-Same-Domain": "1",
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
    "User-Agent": USER_AGENT,
}

# Headers required for page fetch (must look like a browser navigation)
PAGE_FETCH_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/143.0.0.0 Safari/537.36",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

# =============================================================================
# Timeouts (seconds)
# =============================================================================
DEFAULT_TIMEOUT = 30.0
QUERY_TIMEOUT = 120.0
PAGE_FETCH_TIMEOUT = 15.0

STREAM_BLOCK_SIZE = 4096

# =============================================================================
# RPC IDs
# =============================================================================
# Project (notebook) operations
RPC_LIST_RECENTLY_VIEWED_PROJECTS = "wXbhsf"
RPC_CREATE_PROJECT = "CCqFvf"
RPC_GET_PROJECT = "rLM1Ne"
RPC_DELETE_PROJECTS = "WWINqb"
RPC_MUTATE_PROJECT = "s0tc2d"

# Source operations
RPC_DELETE_SOURCES = "tGMBJ"
RPC_REFRESH_SOURCE = "FLmJqe"
RPC_LOAD_SOURCE = "hizoJc"
RPC_CHECK_SOURCE_FRESHNESS = "yR9Yof"
RPC_ACT_ON_SOURCES = "yyryJe"

# Note operations
RPC_GET_NOTES = "cFji9"

# Generation operations
RPC_GENERATE_DOCUMENT_GUIDES = "tr032e"
RPC_GENERATE_NOTEBOOK_GUIDE = "VfAZjd"

# RPC ID to method name mapping for debug logging
RPC_NAMES = {
    RPC_LIST_RECENTLY_VIEWED_PROJECTS: "list_recently_viewed_projects",
    RPC_CREATE_PROJECT: "create_project",
    RPC_GET_PROJECT: "get_project",
    RPC_DELETE_PROJECTS: "delete_projects",
    RPC_MUTATE_PROJECT: "mutate_project",
    RPC_DELETE_SOURCES: "delete_sources",
    RPC_REFRESH_SOURCE: "refresh_source",
    RPC_LOAD_SOURCE: "load_source",
    RPC_CHECK_SOURCE_FRESHNESS: "check_source_freshness",
    RPC_ACT_ON_SOURCES: "act_on_sources",
    RPC_GET_NOTES: "get_notes",
    RPC_GENERATE_DOCUMENT_GUIDES: "generate_document_guides",
    RPC_GENERATE_NOTEBOOK_GUIDE: "generate_notebook_guide",
}

# Fixed metadata tuple trailing most orchestration requests
CLIENT_METADATA = [2, None, [1]]
CONTEXT_MARKER = "[CONTEXT]"
