"""Consultation service: REST CRUD and search over consultations."""

__version__ = "1.0.0"
