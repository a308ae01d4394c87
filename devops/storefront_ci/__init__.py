"""
Storefront CI - release pipeline for a headless commerce storefront.

Gates pull requests and merge-queue entries on static checks, a build and a
browser acceptance suite, publishes preview and production deployments, and
rolls production back to the last good revision when a release fails.
"""

__version__ = "0.1.0"
