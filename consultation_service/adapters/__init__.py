"""Adapters layer for the Consultation service.

This module contains the adapters that interface with external systems: the
relational store and the search index. Adapters implement Port interfaces
defined in the domain layer.
"""
