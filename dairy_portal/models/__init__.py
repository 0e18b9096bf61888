"""
Dairy Sustainability Reporting Portal
SQLAlchemy extension instance shared by every model module.

Usage:
    from dairy_portal.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
