"""External collaborators of the report pipeline (LLM clients, report generator)."""
