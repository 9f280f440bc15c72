"""
Service layer.

Each service encapsulates the business logic for one domain and talks
to the database through ``core.db``.  API handlers only translate
between HTTP and these services, and the maintenance scripts call the
same services directly.
"""
