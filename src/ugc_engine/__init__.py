"""UGC Ad Engine - brief-to-batch AI video generation pipeline."""

__version__ = "0.1.0"
