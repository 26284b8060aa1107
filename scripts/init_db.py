import os
import sys
from datetime import datetime
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.homecare import query as q
from app.homecare.constants import ROLE_ADMIN
from app.homecare.models import User, UserProfile
from scripts._db_utils import database_url_from_env, script_session


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin identity and profile in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@homecare.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"

    with script_session(database_url_from_env(database_url)) as s:
        user = q.profiles.get_user_by_email(s, admin_email)
        if not user:
            user = User(email=admin_email, password_hash=generate_password_hash(admin_password), is_active=True)
            s.add(user)
            s.flush()

        profile = q.profiles.get_profile_by_id(s, user.id)
        if not profile:
            s.add(UserProfile(id=user.id, email=admin_email, full_name="Administrator", role=ROLE_ADMIN))
        elif profile.role != ROLE_ADMIN:
            profile.role = ROLE_ADMIN
            profile.updated_at = datetime.utcnow()

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
