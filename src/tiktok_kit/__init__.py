"""TikTok Login Kit and Content Posting API client."""

__version__ = "0.1.0"
