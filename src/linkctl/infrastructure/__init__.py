"""Infrastructure layer — Org documents, region hosts, workspace wiring.

Concrete implementations of the protocols the domain consumes. May import
from domain and plugins; must never import from services, commands, or output.
"""
