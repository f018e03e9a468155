"""
Forum media and admission control.

This package implements the compute-heavy helpers behind the forum's
server actions:
- Photo compression and thumbnailing before upload
- Per-role photo quotas and storage naming
- In-memory sliding-window rate limiting

The FastAPI application lives in ``forumkit.api``.
"""
from forumkit.config import VERSION

__version__ = VERSION

__all__ = ['__version__']
