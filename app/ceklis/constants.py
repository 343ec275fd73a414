"""
Central constants for the Ceklis application.
"""
from __future__ import annotations

# Remote hosts allowed to serve images (avatars) into the app.
REMOTE_IMAGE_PATTERNS = (
    {
        "protocol": "https",
        "hostname": "lh3.googleusercontent.com",
        "port": "",
        "pathname": "/**",
    },
)

# Headers added to every response.
RESPONSE_HEADERS = {
    "Referrer-Policy": "no-referrer-when-downgrade",
}

ORG_MANAGER_ROLES = frozenset({"OWNER", "ADMIN"})
TEAM_ROLES = ("LEAD", "MEMBER")

TASK_STATUSES = ("BACKLOG", "TODO", "IN_PROGRESS", "IN_REVIEW", "ON_HOLD", "DONE")
TASK_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT")
# Gap between neighbouring task positions in a column.
POSITION_STEP = 1000

EPIC_STATUSES = ("PLANNING", "IN_PROGRESS", "ON_HOLD", "COMPLETED", "CANCELLED")

CHECKIN_MOODS = ("EXCELLENT", "GOOD", "OKAY", "STRUGGLING")
ENERGY_LABELS = {
    1: "Very low",
    2: "Low",
    3: "Moderate",
    4: "High",
    5: "Very high",
}
DEFAULT_ENERGY_LEVEL = 3

# Paths served without session lookup or CSRF bookkeeping.
ANONYMOUS_PATH_PREFIXES = ("/static/", "/health", "/healthz")
