"""
Artifact Reaper - Retention cleanup for GitHub Actions artifacts.

Walks a repository's recent workflow runs and deletes artifacts older
than a configured age, optionally keeping those of tagged commits.
"""

__version__ = "0.1.0"

__all__ = []
