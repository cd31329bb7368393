"""
Service layer for business logic implementation.
Import services from their modules; repositories depend on services.search.
"""
