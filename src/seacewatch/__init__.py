"""
SeaceWatch - Terminal-first ingestion of Peru's SEACE procurement listings.

Drives the SEACE public search with a real browser, normalizes the scraped
process rows, and upserts them into a local database, tracking every run
as a background job.
"""

__version__ = "0.1.0"
__app_name__ = "seacewatch"
