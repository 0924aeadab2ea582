"""
Training Compliance Tracker: SQLAlchemy model package.

Every model module imports the shared ``db`` instance from here:

    from training_tracker.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
