#!/usr/bin/env python3
"""
Script to create (or update) a user profile and print a development token.
Run this inside the Docker container: docker-compose exec backend python create_profile.py <email> <store_id> [--admin] [--operator "Nome"]
"""
import argparse
import sys
import os

# Add the caixa directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from caixa.core.database import SessionLocal
from caixa.core.security import create_token
from caixa.models.store import Store
from caixa.models.user import User
from caixa.services.seed import seed_stores


def create_profile(email: str, store_id: str, is_admin: bool, operator_name: str = None):
    db = SessionLocal()
    try:
        seed_stores(db)
        if not db.query(Store).filter(Store.id == store_id).first():
            print(f"\n✗ Unknown store '{store_id}'")
            return 1

        user = db.query(User).filter(User.email == email).first()
        if user:
            print(f"Found user '{email}' with ID: {user.id}, updating profile")
        else:
            user = User(email=email)
            db.add(user)
        user.store_id = store_id
        user.is_admin = is_admin
        user.operator_name = operator_name
        db.commit()
        db.refresh(user)

        print(f"\n{'='*50}")
        print("PROFILE:")
        print(f"{'='*50}")
        print(f"Email: {user.email}")
        print(f"Store: {user.store_id}")
        print(f"Admin: {user.is_admin}")
        print(f"Token: {create_token(str(user.id))}")
        print(f"{'='*50}")
        return 0
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Create a user profile and print a dev token")
    parser.add_argument("email")
    parser.add_argument("store_id")
    parser.add_argument("--admin", action="store_true")
    parser.add_argument("--operator", default=None)
    args = parser.parse_args()
    sys.exit(create_profile(args.email, args.store_id, args.admin, args.operator))
