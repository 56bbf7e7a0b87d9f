"""Check MongoDB connectivity using the project's settings.

Usage:
  python scripts/check_mongo_connection.py

Prints the effective database name, tries to connect, and lists the
collection sizes the analytics tools read, or shows a clear error.
"""
from pymongo import MongoClient

from utility_mcp.core.config import settings
from utility_mcp.models.documents import (
    CUSTOMERS,
    DAILY_ENERGY_SUMMARY,
    METERS,
    PAYMENTS,
    UTILITIES,
)

uri = settings.get_mongo_uri()
db_name = settings.get_db_name()
print("Effective database:", db_name)

try:
    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    info = client.server_info()
    print("MongoDB server info:", {k: info.get(k) for k in ("version", "gitVersion") if k in info})
    db = client[db_name]
    for name in (UTILITIES, CUSTOMERS, PAYMENTS, DAILY_ENERGY_SUMMARY, METERS):
        print(f"  {name}: {db[name].estimated_document_count()} documents")
    client.close()
except Exception as e:
    print("Failed to connect to MongoDB:\n", e)
    print("Suggested checks:\n - Is MONGODB_URI in .env correct?\n - Is the server reachable from this network?")
