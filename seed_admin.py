"""
seed_admin.py
─────────────
Creates (or promotes) the first admin user. Admins sign in with OTP like
everyone else; this only sets the role so they can manage other roles.
Run ONCE after the migrations:

    python seed_admin.py

Reads from .env; change SEED_ADMIN_* values there, or edit defaults below.
"""
import asyncio
import os
from dotenv import load_dotenv

load_dotenv()

# ── Change these in .env or edit here ────────────────────────────────
ADMIN_EMAIL    = os.getenv("SEED_ADMIN_EMAIL",    "admin@example.com").strip().lower()
ADMIN_USERNAME = os.getenv("SEED_ADMIN_USERNAME", "admin")
# ─────────────────────────────────────────────────────────────────────


async def seed():
    from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
    from sqlalchemy import select
    from app.models.user import User, UserRole

    engine  = create_async_engine(os.environ["DATABASE_URL"], echo=False)
    Session = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async with Session() as db:
        existing = (await db.execute(
            select(User).where(User.email == ADMIN_EMAIL)
        )).scalar_one_or_none()

        if existing and existing.role == UserRole.ADMIN.value:
            print(f"Admin already exists: {ADMIN_EMAIL}")
            print("No changes made.")
            await engine.dispose()
            return

        if existing:
            existing.role = UserRole.ADMIN.value
            admin = existing
        else:
            admin = User(
                email=ADMIN_EMAIL,
                username=ADMIN_USERNAME,
                role=UserRole.ADMIN.value,
                xp_points=0,
            )
            db.add(admin)
        await db.commit()
        await db.refresh(admin)

    await engine.dispose()

    print("\nAdmin ready.")
    print(f"    ID    : {admin.id}")
    print(f"    Email : {admin.email}")
    print(f"    Role  : {admin.role}")
    print()
    print("Sign in via : POST /api/auth/request-otp")
    print(f'    Body    : {{"email": "{ADMIN_EMAIL}"}}')


if __name__ == "__main__":
    asyncio.run(seed())
