"""
Privileged script to elevate a user to admin in an org.

This is the only way to grant the admin role: the member API rejects any
promotion to admin. It can also bootstrap a fresh org with its first admin
(``--create-org``) and create the user with a password when missing.

    python -m taskboard.scripts.grant_admin --org acme --email ops@acme.test
"""

import argparse
import asyncio
import sys
import uuid
from typing import Optional

import structlog
from pydantic import ValidationError
from sqlmodel import select

from taskboard.core.auth import hash_password
from taskboard.core.database import get_session_context, init_db
from taskboard.models.organization import Organization
from taskboard.models.user import User
from taskboard.services.members import grant_admin
from taskboard_shared.schemas.organizations import OrgCreateRequest

log = structlog.get_logger()


async def run(
    org_slug: str,
    email: str,
    *,
    org_name: Optional[str] = None,
    create_org: bool = False,
    password: Optional[str] = None,
    display_name: Optional[str] = None,
) -> None:
    # Validate the slug before touching the database
    request = OrgCreateRequest(name=org_name or org_slug, slug=org_slug) if create_org else None

    await init_db()

    async with get_session_context() as session:
        # 1. Resolve (or bootstrap) the org
        result = await session.execute(select(Organization).where(Organization.slug == org_slug))
        org = result.scalar_one_or_none()
        if org is None:
            if request is None:
                raise SystemExit(f"Organization '{org_slug}' not found (pass --create-org)")
            org = Organization(id=uuid.uuid4(), name=request.name, slug=request.slug)
            session.add(org)
            await session.flush()
            log.info("org.created", org_id=str(org.id), slug=org.slug)

        # 2. Resolve (or create) the user
        result = await session.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user is None:
            if not password:
                raise SystemExit(f"User {email} not found (pass --password to create it)")
            user = User(
                id=uuid.uuid4(),
                email=email,
                display_name=display_name or email.split("@")[0],
                password_hash=hash_password(password),
            )
            session.add(user)
            await session.flush()
            log.info("user.created", user_id=str(user.id), email=email)

        # 3. Elevate
        await grant_admin(session, org, user)

    print(f"{email} is now an admin of '{org_slug}'.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Grant the admin role in an organization.")
    parser.add_argument("--org", required=True, help="Organization slug")
    parser.add_argument("--email", required=True, help="Email address of the user")
    parser.add_argument("--create-org", action="store_true", help="Create the org if missing")
    parser.add_argument("--org-name", help="Display name when creating the org")
    parser.add_argument("--password", help="Create the user with this password if missing")
    parser.add_argument("--name", help="Display name when creating the user")

    args = parser.parse_args(argv)
    try:
        asyncio.run(
            run(
                args.org,
                args.email,
                org_name=args.org_name,
                create_org=args.create_org,
                password=args.password,
                display_name=args.name,
            )
        )
    except ValidationError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
