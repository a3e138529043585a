"""
API tests package for EVCompare backend.

Contains tests for all API endpoints:
- Vehicles (list, filter, detail)
- Comparison (compare, CSV export)
- Cron (secret check, ingestion run)
- Health and metrics
"""
