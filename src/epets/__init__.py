"""ePetitions moderation service.

The admin side of the petitions site: moderator sessions and the read-only
archive of petitions from dissolved parliaments (listing, search, detail
pages and a streamed CSV export).
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
