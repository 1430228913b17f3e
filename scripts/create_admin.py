import sys
import os
import getpass

# Add parent dir to path
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from labsite.infrastructure.database import SessionLocal, Base, engine
from labsite.domain.models.user import User, ROLE_ADMIN
from labsite.infrastructure.repositories.user_repository import SQLAlchemyUserRepository
from labsite.application.services.auth_service import insert_user
from labsite.core.exceptions import AppError


def create_admin():
    print("Creating an administrator account...")
    email = input("Email: ").strip().lower()
    name = input("Name: ").strip()
    password = getpass.getpass("Password: ")
    if not email or not password:
        print("Email and password are required.")
        return 1

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        repo = SQLAlchemyUserRepository(db, User)
        user = User(email=email, name=name or None, role=ROLE_ADMIN, must_change_password=False)
        user.set_password(password)
        user.extend_expiration()
        user = insert_user(repo, user)
        print(f"Admin created: {user.email} (id {user.id})")
        return 0
    except AppError as e:
        print(f"Admin creation failed: {e.message}")
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(create_admin())
