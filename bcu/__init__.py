"""Beekeeper Compose Updater (BCU).

Polling agent that keeps a docker-compose file tracked in git in line with the
latest approved images recorded by beekeeper:
 - pull the manifest repository
 - look up every service's image path in beekeeper
 - rewrite drifted image references in place
 - commit and push the manifest back

The implementation is intentionally small so it can be audited and explained.
"""

__version__ = "1.0.0"
