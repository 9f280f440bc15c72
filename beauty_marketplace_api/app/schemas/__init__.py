"""
Pydantic schema definitions for API payloads.

Each domain (users, services, providers, bookings, reviews) defines its
own request and response models.  Schemas are separated from the
database tables to decouple API representation from persistence.
"""
