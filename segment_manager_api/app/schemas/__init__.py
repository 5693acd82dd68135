"""
Pydantic schema definitions for segment records and API payloads.

Schemas are separated from the services so that the in-memory records
and the HTTP representation share one definition.
"""
