"""Session Reports - asynchronous AI report pipeline

Turns completed activity sessions into AI-generated reports through a
Postgres-backed job queue that any number of workers can drain concurrently.
"""

__version__ = "0.1.0"
