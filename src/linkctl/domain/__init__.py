"""Domain layer — link grammar, codecs, registry, resolver, store, previews.

This layer depends only on stdlib and structlog.
It must never import from services, infrastructure, commands, or config.
"""
