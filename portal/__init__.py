"""Application portal package.

``portal.main`` holds the HTTP API; ``portal.client`` holds the client-side
session/state layer that talks to it.
"""

__all__: list[str] = []
