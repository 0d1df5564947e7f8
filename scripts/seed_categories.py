#!/usr/bin/env python3
"""
Create tables and load complaint categories.
Usage: python seed_categories.py [category name ...]
"""

import sys

from nagarseva.database import Base, SessionLocal, engine
from nagarseva.services.catalog_service import DEFAULT_CATEGORIES, seed_categories


def main():
    names = sys.argv[1:] or DEFAULT_CATEGORIES

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        added = seed_categories(db, names)
        db.commit()
    finally:
        db.close()

    print(f"Added {added} of {len(names)} categories")


if __name__ == "__main__":
    main()
