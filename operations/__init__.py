"""Operations application for the hospital dashboard.

This package holds the models, serializers, services, views and route
registrations behind the dashboard screens, plus :mod:`operations.console`,
the headless client-side workflows that consume the API.
"""
