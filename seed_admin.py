"""
seed_admin.py
─────────────
Creates the first Admin account (approved, bcrypt-hashed password).
Admins cannot sign up through the OTP flow on a fresh install, so run this
ONCE against a new database:

    python seed_admin.py

Reads from .env — change SEED_ADMIN_* values there, or edit defaults below.
"""
import asyncio
import os
from urllib.parse import quote

from dotenv import load_dotenv

load_dotenv()

# ── Change these in .env or edit here ────────────────────────────────
ADMIN_FIRST_NAME = os.getenv("SEED_ADMIN_FIRST_NAME", "Super")
ADMIN_LAST_NAME  = os.getenv("SEED_ADMIN_LAST_NAME",  "Admin")
ADMIN_EMAIL      = os.getenv("SEED_ADMIN_EMAIL",      "admin@studynotion.dev").lower()
ADMIN_PASSWORD   = os.getenv("SEED_ADMIN_PASSWORD",   "ChangeMe@2025")
# ─────────────────────────────────────────────────────────────────────


async def seed():
    from app.controllers.auth_controller import AVATAR_URL
    from app.core.config import get_settings
    from app.core.database import create_tables, dispose_engine
    from app.core.security import PasswordHasher
    from app.models.user import AccountType
    from app.repositories.auth_store import SqlAlchemyAuthStore
    from app.schemas.auth import password_policy_violations

    problems = password_policy_violations(ADMIN_PASSWORD)
    if problems:
        print("❌  SEED_ADMIN_PASSWORD does not meet the password policy:")
        for p in problems:
            print(f"    - {p}")
        return

    settings = get_settings()
    store = SqlAlchemyAuthStore()

    await create_tables()

    # Idempotent: skip if the account exists
    if await store.get_user_by_email(ADMIN_EMAIL):
        print(f"⚠️  Account already exists: {ADMIN_EMAIL}")
        print("   No changes made. To reset password, use PUT /api/auth/change-password.")
        await dispose_engine()
        return

    hasher = PasswordHasher(rounds=settings.BCRYPT_ROUNDS)
    profile = await store.create_profile()
    admin = await store.create_user(
        first_name=ADMIN_FIRST_NAME,
        last_name=ADMIN_LAST_NAME,
        email=ADMIN_EMAIL,
        password_hash=hasher.hash(ADMIN_PASSWORD),
        account_type=AccountType.ADMIN,
        approved=True,
        image=AVATAR_URL.format(seed=quote(f"{ADMIN_FIRST_NAME} {ADMIN_LAST_NAME}")),
        profile_id=profile.id,
    )
    await dispose_engine()

    print("\n✅  Admin created successfully!")
    print(f"    ID    : {admin.id}")
    print(f"    Name  : {admin.first_name} {admin.last_name}")
    print(f"    Email : {admin.email}")
    print()
    print("🔑  Login endpoint : POST /api/auth/login")
    print(f'    Body           : {{"email": "{ADMIN_EMAIL}", "password": "<SEED_ADMIN_PASSWORD>"}}')
    print()
    print("⚠️   Change the password after first login!")


if __name__ == "__main__":
    asyncio.run(seed())
