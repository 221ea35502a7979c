"""
Promote Admin Script
Sets user_role on an existing profile, looked up by email or username.
Bootstrap the first universal admin with this after they have signed up:

    python -m app.scripts.promote_admin someone@example.edu
    python -m app.scripts.promote_admin jdoe --role group_admin
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from app.core.roles import ROLE_HIERARCHY, UNIVERSAL_ADMIN
from app.database.supabase_client import get_service_supabase
from supabase import Client
from typing import Any, Dict, Optional
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def find_profile(supabase: Client, identifier: str) -> Optional[Dict[str, Any]]:
    column = "email" if "@" in identifier else "username"
    result = supabase.table("profiles")\
        .select("id, email, username, user_role")\
        .eq(column, identifier.strip().lower())\
        .execute()
    return result.data[0] if result.data else None


def promote(supabase: Client, identifier: str, role: str = UNIVERSAL_ADMIN) -> Dict[str, Any]:
    """Set the role; returns the updated profile. Raises LookupError when no profile matches."""
    if role not in ROLE_HIERARCHY:
        raise ValueError(f"Unknown role '{role}'")
    profile = find_profile(supabase, identifier)
    if not profile:
        raise LookupError(f"No profile found for '{identifier}'")
    if profile.get("user_role") == role:
        logger.info(f"{identifier} is already {role}")
        return profile

    result = supabase.table("profiles")\
        .update({"user_role": role})\
        .eq("id", profile["id"])\
        .execute()
    logger.info(f"Changed {identifier} from {profile.get('user_role')} to {role}")
    return result.data[0] if result.data else {**profile, "user_role": role}


def main(argv=None):
    parser = argparse.ArgumentParser(description="Change a UniNote user's role")
    parser.add_argument("identifier", help="email or username of the profile")
    parser.add_argument("--role", default=UNIVERSAL_ADMIN, choices=sorted(ROLE_HIERARCHY, key=ROLE_HIERARCHY.get))
    args = parser.parse_args(argv)

    try:
        promote(get_service_supabase(), args.identifier, args.role)
    except (LookupError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
