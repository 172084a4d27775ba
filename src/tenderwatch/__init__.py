"""
TenderWatch - Government tender aggregator.

Pulls tenders from public procurement sources into a local database and
attaches AI summaries and business categories to them.
"""

__version__ = "0.1.0"
__app_name__ = "tenderwatch"
