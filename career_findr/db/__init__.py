"""
Database module - MongoDB connection and document store.
"""
from career_findr.db.mongodb import get_mongo_db, get_document_store, test_mongo_connection

__all__ = [
    "get_mongo_db",
    "get_document_store",
    "test_mongo_connection"
]
