"""FastAPI layer of the Consultation service."""
