"""
lifterid - Athlete identity resolution for weightlifting results

Maps athletes scraped from USA Weightlifting's Sport80 results portal onto
a canonical roster of lifters, without creating duplicates on re-scrapes
and without merging different people who share a name.

Main components:
- identity: Matching, disambiguation, verification and the resolver
- scrape: Playwright scraper for Sport80 member profiles
- services: Results ingestion and the review queue
- db: SQLAlchemy models and session management
"""

__version__ = "1.0.0"
