"""
Database models module initialization.
Exports all database models for convenient imports throughout the application.

Models exported:
- User: User account, role and password lifecycle state
- Tour: Bookable tour with pricing, schedule, locations and guides
- Review: Rating of a Tour by a User (one per pair)
"""
from .user import User, Role
from .tour import Tour, Difficulty
from .review import Review
