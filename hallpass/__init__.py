"""Hall pass log - check-out/check-in tracking with usage threshold and archive migration."""

__version__ = "1.0.0"
