"""
lifterid services - business logic for data processing pipelines.

Usage:
    from lifterid.services import ingest_results, ScrapedResult
"""

from lifterid.services.results_ingestion import (
    ingest_results,
    ResultsIngestionStats,
    ScrapedResult,
)

__all__ = [
    "ingest_results",
    "ResultsIngestionStats",
    "ScrapedResult",
]
