"""
cardhub.bootstrap

Create or promote the first administrator.

Responsibilities:
- Provide `ensure_admin`, which bypasses the claims authority's admin check (there is no
  admin yet to pass it) but still leaves the same audit trail.
- Expose it as `cardhub-bootstrap --email ... [--password ... | --prompt]`.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cardhub.auth.models import Role
from cardhub.db.init_db import init_db
from cardhub.db.repositories.profiles import ProfileRepo
from cardhub.db.session import create_engine, create_sessionmaker
from cardhub.errors import CardhubError, InvalidArgument
from cardhub.identity.store import IdentityStore, PrincipalRecord
from cardhub.observability.logging import configure_logging, get_logger
from cardhub.services.activity import registered_hook
from cardhub.services.audit_logger import Action, AuditLogger
from cardhub.settings import Settings, get_settings

log = get_logger(__name__)


async def ensure_admin(
    *,
    session_factory: async_sessionmaker[AsyncSession],
    identity: IdentityStore,
    audit: AuditLogger,
    email: str,
    password: str | None = None,
    display_name: str | None = None,
) -> PrincipalRecord:
    """
    Grant `admin` to `email`, creating the principal first when `password` is given.

    The role change is audited like a claims-authority change, with no actor: the
    operator running the bootstrap is not a principal.
    """

    existing = await identity.get_user_by_email(email)
    if existing is None:
        if not password:
            raise InvalidArgument(
                f"{email} does not exist yet; a password is required to create it",
                field="password",
            )
        existing = await identity.create_user(
            email=email, password=password, display_name=display_name
        )
    uid = existing.uid

    await identity.set_custom_claims(uid, {"role": Role.admin.value})
    async with session_factory() as session:
        await ProfileRepo(session).upsert(
            uid, email=existing.email, role=Role.admin.value, blocked=False
        )
        await session.commit()

    audit.spawn(
        Action.update,
        details=f"Updated role of user {uid} to {Role.admin.value}",
    )
    log.info("admin_bootstrapped", uid=uid)
    record = await identity.get_user(uid)
    if record is None:
        raise RuntimeError(f"principal {uid} disappeared during bootstrap")
    return record


async def _run(settings: Settings, email: str, password: str | None) -> PrincipalRecord:
    engine = create_engine(settings)
    try:
        if settings.env in ("dev", "test"):
            await init_db(engine)
        session_factory = create_sessionmaker(engine)
        audit = AuditLogger(session_factory)
        identity = IdentityStore(session_factory=session_factory, settings=settings)
        identity.on_user_created(registered_hook(audit))
        try:
            return await ensure_admin(
                session_factory=session_factory,
                identity=identity,
                audit=audit,
                email=email,
                password=password,
            )
        finally:
            await audit.drain()
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Create or promote a CardHub administrator.")
    parser.add_argument("--email", required=True)
    parser.add_argument(
        "--password",
        help="only needed when the account does not exist yet",
    )
    parser.add_argument(
        "--prompt", action="store_true", help="read the password from the terminal instead"
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(service_name=settings.service_name, level=settings.log_level)
    password = args.password
    if password is None and args.prompt:
        password = getpass.getpass("Password: ")

    try:
        record = asyncio.run(_run(settings, args.email, password))
    except CardhubError as e:
        parser.error(e.message)
    print(f"{record.email} is now an admin (uid={record.uid})")


if __name__ == "__main__":
    main()
