"""
Central constants for the home-care licensing application.
"""
from __future__ import annotations

# User roles
ROLE_COMPANY_OWNER = "company_owner"
ROLE_STAFF_MEMBER = "staff_member"
ROLE_ADMIN = "admin"
ROLE_EXPERT = "expert"

ALL_ROLES = frozenset({ROLE_COMPANY_OWNER, ROLE_STAFF_MEMBER, ROLE_ADMIN, ROLE_EXPERT})
AGENCY_ROLES = frozenset({ROLE_COMPANY_OWNER, ROLE_STAFF_MEMBER})

# Application status
APPLICATION_STATUS_OPEN = "open"
APPLICATION_STATUS_CLOSED = "closed"
APPLICATION_STATUSES = (APPLICATION_STATUS_OPEN, APPLICATION_STATUS_CLOSED)

# Only these roles may close an application.
CLOSE_ALLOWED_ROLES = frozenset({ROLE_EXPERT, ROLE_ADMIN})

CLIENT_STATUS_ACTIVE = "active"
DOCUMENT_STATUS_PENDING = "pending"

# US state names (alphabetical) for application payload validation.
US_STATES = (
    "Alabama", "Alaska", "Arizona", "Arkansas", "California", "Colorado",
    "Connecticut", "Delaware", "Florida", "Georgia", "Hawaii", "Idaho",
    "Illinois", "Indiana", "Iowa", "Kansas", "Kentucky", "Louisiana",
    "Maine", "Maryland", "Massachusetts", "Michigan", "Minnesota",
    "Mississippi", "Missouri", "Montana", "Nebraska", "Nevada",
    "New Hampshire", "New Jersey", "New Mexico", "New York",
    "North Carolina", "North Dakota", "Ohio", "Oklahoma", "Oregon",
    "Pennsylvania", "Rhode Island", "South Carolina", "South Dakota",
    "Tennessee", "Texas", "Utah", "Vermont", "Virginia", "Washington",
    "West Virginia", "Wisconsin", "Wyoming",
)
