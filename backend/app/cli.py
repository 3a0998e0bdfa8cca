"""Management CLI for access-control inspection.

Usage:
    python -m app.cli list-templates                          # Show the role template catalog
    python -m app.cli show-permissions <user_id> <org_id>     # Resolve effective permissions
"""

import asyncio
import json
import sys

from app.auth.permissions import list_templates
from app.database import async_session, engine
from app.services.resolver import get_effective_permissions


def print_templates():
    for template in list_templates():
        granted = template["permissions"].granted()
        print(f"  {template['template_key']:<9} {template['name']:<9} ({template['icon']})")
        print(f"      {len(granted)}/16 granted: {', '.join(granted) or '-'}")


async def _resolve(user_id: str, organization_id: str):
    try:
        async with async_session() as session:
            return await get_effective_permissions(session, user_id, organization_id)
    finally:
        await engine.dispose()


def show_permissions(user_id: str, organization_id: str):
    resolved = asyncio.run(_resolve(user_id, organization_id))
    if resolved is None:
        print(f"User {user_id} has no access to organization {organization_id}.")
        return
    print(json.dumps(resolved.model_dump(), indent=2))


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "list-templates":
        print_templates()
    elif cmd == "show-permissions" and len(sys.argv) == 4:
        show_permissions(sys.argv[2], sys.argv[3])
    else:
        print("Usage: python -m app.cli [list-templates|show-permissions <user_id> <org_id>]")
