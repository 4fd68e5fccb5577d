"""
Create (or reuse) a user, grant capabilities and print a bearer token.

Usage:
    python scripts/bootstrap_admin.py admin@example.com admin.identity.review manage_permissions
"""
import asyncio
import sys

sys.path.insert(0, ".")

from civictrust.database import async_session_maker, init_db
from civictrust.kernel.identity import IdentityService, create_access_token
from civictrust.kernel.models import User
from civictrust.kernel.permissions import PermissionService, parse_capability


async def main(email: str, names: list[str]) -> None:
    capabilities = [parse_capability(n) for n in names]
    await init_db()

    async with async_session_maker() as session:
        user = await IdentityService(session).get_user_by_email(email)
        if user is None:
            user = User(email=email.lower().strip(), display_name=email.split("@")[0])
            session.add(user)
            await session.flush()
            print(f"Created user {user.id}")

        service = PermissionService(session)
        for capability in capabilities:
            await service.grant(user.id, capability)
            print(f"Granted {capability.value}")
        await session.commit()

    token, expires, _ = create_access_token(user.id, email=user.email)
    print(f"\nToken (expires {expires:%Y-%m-%d %H:%M} UTC):\n{token}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], sys.argv[2:]))
