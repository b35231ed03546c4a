"""Service layer for the link shortener.

Services orchestrate repositories and the cache and provide the
domain operations used by the API and background jobs.
"""

from shortlink.services.cleanup import CleanupService
from shortlink.services.shortener import CreateResult, LinkService, SlugAvailability

__all__ = ["CleanupService", "CreateResult", "LinkService", "SlugAvailability"]
