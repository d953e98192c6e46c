"""
Script to recreate the database from the current models
"""
from caixa.core.database import SessionLocal, engine
from caixa.models import Base  # registers every table
from caixa.services.seed import seed_demo


def recreate_db():
    print("Recreating database...")

    print("Dropping existing tables...")
    Base.metadata.drop_all(bind=engine)

    print("Creating tables...")
    Base.metadata.create_all(bind=engine)

    print("Seeding stores and demo profiles...")
    with SessionLocal() as db:
        seed_demo(db)

    print("Database recreated successfully!")
    print("\nCreate a token with: python create_profile.py <email> <store_id>")


if __name__ == "__main__":
    recreate_db()
