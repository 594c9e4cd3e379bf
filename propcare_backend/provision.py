"""Create team accounts that cannot sign themselves up.

Usage:
    python -m propcare_backend.provision helpdesk@example.com secret --role helpdesk
    python -m propcare_backend.provision joe@example.com secret --role contractor \
        --name "Joe Plumber" --services plumbing
"""

import argparse
import asyncio

from .core.exceptions import PropCareException
from .core.logging import get_logger, setup_logging, shutdown_logging
from .database import AsyncSessionLocal, engine, init_db
from .modules.auth.models import RoleSlug
from .modules.auth.services import provision_profile
from .modules.directory import crud as directory_crud

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Provision a PropCare profile")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument(
        "--role",
        choices=[r.value for r in RoleSlug],
        default=RoleSlug.HELPDESK.value,
    )
    parser.add_argument("--name", dest="full_name")
    parser.add_argument("--phone")
    parser.add_argument(
        "--services", help="Services offered, for contractor directory entries"
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables first (development databases only)",
    )
    return parser


async def provision(args: argparse.Namespace) -> None:
    if args.create_tables:
        await init_db()

    role = RoleSlug(args.role)
    async with AsyncSessionLocal() as db:
        profile = await provision_profile(
            db, args.email, args.password, role, full_name=args.full_name
        )
        logger.info(f"Provisioned {role.value} profile {profile.id}")

        if role == RoleSlug.CONTRACTOR:
            contractor = await directory_crud.create_contractor(
                db,
                profile_id=profile.id,
                full_name=args.full_name or args.email,
                email=profile.email,
                phone=args.phone,
                services_provided=args.services,
            )
            await db.commit()
            logger.info(f"Linked contractor entry {contractor.id} to {profile.id}")

    await engine.dispose()


def main() -> None:
    args = build_parser().parse_args()
    setup_logging()
    try:
        asyncio.run(provision(args))
    except PropCareException as e:
        logger.error(e.message)
        raise SystemExit(1)
    finally:
        shutdown_logging()


if __name__ == "__main__":
    main()
