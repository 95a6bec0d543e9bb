"""Shift workflow package.

Feature modules (ingestion, authorizations, jobs, exchanges, ...) follow the
same split: frozen dataclass models, Protocol repositories, MySQL adapters,
services holding the use cases, and a thin Flask controller layer.
"""
