"""Web application package for LingoShield."""

from flask import Flask

from lingoshield.config import get_default_store, initialize_app


def create_app(store=None) -> Flask:
    """
    Application factory for the web API.

    Args:
        store: Key-value store for configuration, DNT terms, glossary and
            translation memories; the sqlite store when omitted
    """
    store = store if store is not None else get_default_store()
    initialize_app(store)

    from .app import build_app  # Import here to avoid circular imports

    return build_app(store)


__all__ = ["create_app"]
