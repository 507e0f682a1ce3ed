"""Warehouse record ingestion.

This module reads self-describing records from BigQuery or local Parquet
files and drives them through conversion into document writes.
"""
