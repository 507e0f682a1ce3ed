"""Document store write sinks.

This module applies document write intents to Firestore, or to a local
JSONL file for dry runs, and owns the document value serialization.
"""
