#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database, MongoDB and LLM provider are reachable
with the current .env.
Usage: python scripts/check_connections.py
"""
import sys
sys.path.insert(0, '.')

from careermatch.core.config import get_settings
from careermatch.db.postgres import test_postgres_connection
from careermatch.db.mongodb import test_mongo_connection
from careermatch.services.llm_client import get_llm_client
from careermatch.services.qr_service import job_link, qr_code_url


def main():
    settings = get_settings()
    failures = 0
    print("=" * 50)
    print("CAREERMATCH - CONNECTION CHECK")
    print("=" * 50)

    # Relational database
    print("\n[1] Checking database...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    if test_postgres_connection():
        print("    ✅ Database: CONNECTED")
    else:
        print("    ❌ Database: FAILED")
        failures += 1

    # MongoDB
    print("\n[2] Checking MongoDB...")
    if not settings.mongodb_enabled:
        print("    ⚠️  MongoDB: disabled (MONGODB_ENABLED=false)")
    else:
        print(f"    URI: {settings.mongodb_uri}")
        print(f"    Database: {settings.mongodb_db}")
        if test_mongo_connection():
            print("    ✅ MongoDB: CONNECTED")
        else:
            print("    ❌ MongoDB: FAILED")
            failures += 1

    # LLM (only if API key is set)
    print("\n[3] Checking LLM provider...")
    if settings.llm_configured:
        print(f"    Base URL: {settings.llm_base_url}")
        print(f"    Model: {settings.llm_model}")
        if get_llm_client().test_connection():
            print("    ✅ LLM: CONNECTED")
        else:
            print("    ❌ LLM: FAILED")
            failures += 1
    else:
        print("    ⚠️  LLM: API key not configured, fallbacks will be used")

    # QR links
    print("\n[4] QR links...")
    print(f"    Environment: {settings.environment} (hosted: {settings.is_hosted})")
    print(f"    Job link: {job_link('JOB_0001')}")
    print(f"    QR image: {qr_code_url('JOB_0001')}")

    print("\n" + "=" * 50)
    print("Connection check complete!" if not failures else f"{failures} check(s) failed")
    print("=" * 50)
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
