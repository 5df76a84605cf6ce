"""
Utility modules for the clinic management application.

Datetime helpers and file storage shared across services and API endpoints.
"""
