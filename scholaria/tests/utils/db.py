"""
Test DB utilities: reachability check for the MongoDB-backed repository.

The Mongo suite runs against `TEST_MONGO_URI` (default
`mongodb://127.0.0.1:27017`) in a throwaway database and is skipped when no
server answers a ping within a second.
"""
from __future__ import annotations

import os
import uuid

import pytest
from pymongo import MongoClient
from pymongo.errors import PyMongoError


def mongo_test_uri() -> str:
    return os.getenv("TEST_MONGO_URI", "mongodb://127.0.0.1:27017")


def mongo_client_or_skip() -> MongoClient:
    client = MongoClient(mongo_test_uri(), serverSelectionTimeoutMS=1000, tz_aware=True)
    try:
        client.admin.command("ping")
    except PyMongoError:
        client.close()
        pytest.skip("MongoDB not reachable; start a local server or set TEST_MONGO_URI")
    return client


def scratch_db_name() -> str:
    return f"scholaria_test_{uuid.uuid4().hex[:12]}"
