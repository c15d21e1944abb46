"""pqtools - inspect and split Parquet files from the command line."""

__version__ = "0.3.0"
