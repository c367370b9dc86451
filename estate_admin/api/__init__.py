# ================================
# API PACKAGE INITIALIZATION (api/__init__.py)
# ================================

"""
API Package

Root package für alle API-Routen
"""

# Version Info
API_VERSION = "1.0.0"
API_DESCRIPTION = """
Real estate administration API

## Features
- Property listings with search and filters
- Visit scheduling on fixed hourly slots (09:00-18:00)
- Review workflow for visit requests (accept, refuse, cancel)
- In-app notifications for staff and visitors
- User administration and dashboard statistics

## Authorization
- Bearer JWT issued by the identity provider (`sub` = user id)
- Roles: Admin, Agent, User
"""

__all__ = ["API_VERSION", "API_DESCRIPTION"]
