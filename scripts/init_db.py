#!/usr/bin/env python3
"""
Initialize the Storefront database.
Creates all tables and seeds the default site settings and promo code.
"""

import sys
from pathlib import Path

# Allow running from project root
sys.path.insert(0, str(Path(__file__).parent.parent))

from storefront.config import settings
from storefront.database import init_db


def main():
    print("Initializing database...")
    print(f"  DATABASE_URL: {settings.DATABASE_URL[:40]}...")
    print(f"  Environment: {settings.ENVIRONMENT}")

    init_db()

    print("Database initialized successfully.")
    print("All tables created, defaults seeded.")


if __name__ == "__main__":
    main()
