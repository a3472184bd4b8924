"""
Seed a SQLite database with the demo tourist package catalog.
Drops and recreates all tables, then inserts the demo rows.
Run: python scripts/seed_sqlite.py [path/to/tour_packages.db]
"""

import os
import sys

from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from tour_search.db.database import BACKEND_DIR, create_store_engine
from tour_search.db.models import Base, PricingOption, TouristPackage
from tour_search.db.seed import seed_demo_catalog


def main():
    db_path = sys.argv[1] if len(sys.argv) > 1 else os.path.join(BACKEND_DIR, "tour_packages.db")
    db_url = f"sqlite:///{os.path.abspath(db_path)}"
    print(f"Database: {db_path}")

    engine = create_store_engine(db_url)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    print("Tables created")

    session = sessionmaker(bind=engine)()
    try:
        seed_demo_catalog(session)
        packages = session.execute(select(func.count(TouristPackage.id))).scalar_one()
        options = session.execute(select(func.count(PricingOption.id))).scalar_one()
        print(f"\nDone! {packages} packages, {options} pricing options")
        print(f"Point the service at it with DATABASE_URL={db_url}")
    finally:
        session.close()
        engine.dispose()


if __name__ == "__main__":
    main()
