"""Score-prediction game core: result ingestion, scoring, rankings and achievements."""

__version__ = "0.1.0"
