#!/usr/bin/env python3
"""Create or change a user's profile role (idempotent).

Usage:
  python scripts/set_user_role.py --email jane@agency.com --role company_owner
  python scripts/set_user_role.py --email sam@agency.com --role staff_member --company-owner-email jane@agency.com
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.homecare import query as q
from app.homecare.constants import ALL_ROLES, ROLE_COMPANY_OWNER, ROLE_STAFF_MEMBER
from app.homecare.models import UserProfile
from scripts._db_utils import database_url_from_env, script_session


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="User email")
    parser.add_argument("--role", required=True, choices=sorted(ALL_ROLES))
    parser.add_argument("--full-name", default=None)
    parser.add_argument("--company-owner-email", default=None, help="Agency owner (staff members only)")
    args = parser.parse_args()

    email = args.email.strip().lower()
    with script_session(database_url_from_env()) as s:
        user = q.profiles.get_user_by_email(s, email)
        if not user:
            print(f"User not found: {email}")
            sys.exit(1)

        owner_id = None
        if args.role == ROLE_STAFF_MEMBER:
            if not args.company_owner_email:
                print("--company-owner-email is required for staff members.")
                sys.exit(1)
            owner = q.profiles.get_user_by_email(s, args.company_owner_email.strip().lower())
            owner_profile = q.profiles.get_profile_by_id(s, owner.id) if owner else None
            if not owner_profile or owner_profile.role != ROLE_COMPANY_OWNER:
                print(f"Not a company owner: {args.company_owner_email}")
                sys.exit(1)
            owner_id = owner.id

        profile = q.profiles.get_profile_by_id(s, user.id)
        if not profile:
            profile = UserProfile(id=user.id, email=user.email, role=args.role)
            s.add(profile)
        profile.role = args.role
        profile.company_owner_id = owner_id
        if args.full_name:
            profile.full_name = args.full_name
        profile.updated_at = datetime.utcnow()

    print(f"Role {args.role} set for {email}")


if __name__ == "__main__":
    main()
