"""
repo-forge: batch ingestion of records into a digital object repository.
"""

__version__ = "0.1.0"
__author__ = "repo-forge contributors"
__description__ = "Two-phase batch ingest pipeline for repository objects with MODS/DC datastreams"
