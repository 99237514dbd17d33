# create_admin.py
import argparse
import getpass

from sqlmodel import Session

from claims_portal.core.config import get_settings
from claims_portal.core.exceptions import DuplicateEmail
from claims_portal.database import create_db_and_tables, engine
from claims_portal.models.user import User
from claims_portal.repositories.refresh_token_repo import RefreshTokenRepository
from claims_portal.repositories.user_repo import UserRepository
from claims_portal.services.credential_store import CredentialStore


def create_admin(
    session: Session,
    store: CredentialStore,
    email: str,
    password: str,
    name: str = "Admin User",
    contractor_id: str = "ADMIN",
    master: bool = False,
) -> User | None:
    """Provision an admin account; returns None when the email is taken."""
    try:
        return store.create_user(
            session,
            email=email,
            raw_password=password,
            name=name,
            contractor_id=contractor_id,
            role="master_admin" if master else "admin",
            is_admin=True,
        )
    except DuplicateEmail:
        return None


def main():
    parser = argparse.ArgumentParser(description="Create a portal admin account.")
    parser.add_argument("email")
    parser.add_argument("--name", default="Admin User")
    parser.add_argument("--contractor-id", default="ADMIN")
    parser.add_argument("--master", action="store_true", help="create a master admin")
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    create_db_and_tables()
    store = CredentialStore(UserRepository(), RefreshTokenRepository(), get_settings())

    with Session(engine) as session:
        admin = create_admin(
            session,
            store,
            args.email,
            password,
            name=args.name,
            contractor_id=args.contractor_id,
            master=args.master,
        )

    if admin is None:
        print("Admin user already exists")
    else:
        print(f"Admin user created successfully: {admin.email}")


if __name__ == "__main__":
    main()
