"""
Centralized query layer. All reads and writes for profiles, clients, applications
and notifications go through these functions. Callers pass the SQLAlchemy session
that matches their scope (request session or script session) as the first argument.
"""
from app.homecare.query import applications, clients, notifications, profiles

__all__ = ["applications", "clients", "notifications", "profiles"]
