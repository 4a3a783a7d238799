"""Routes package for the reporting chain engine."""

# Authentication and permission checks live in the console in front of this
# service; these routes trust the caller-supplied actor and scope.

from .health import health_bp
from .leadership import leadership_bp

__all__ = ["health_bp", "leadership_bp"]
