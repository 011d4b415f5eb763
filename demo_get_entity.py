# demo_get_entity.py
# Version: v1

r"""
Quick smoke test: fetch a source system from a live MDM service, then look
up its mapping into another system.

Run with virtualenv active and env vars set (MDM_BASE_URL, MDM_USER_NAME):
  python demo_get_entity.py 42 Trayport
"""

import asyncio
import logging
import sys

from mdm_client.client import MdmClient
from mdm_client.config import MdmClientConfig
from mdm_client.models import SourceSystem


async def main(entity_id: int, target_system: str) -> None:
    cfg = MdmClientConfig.from_env()

    async with MdmClient(cfg) as client:
        systems = client.entity_service(SourceSystem)

        response = await systems.get(entity_id)
        if not response.is_valid:
            print(f"Fetch failed ({response.status_code}): {response.fault.message}")
            return

        entity = response.message
        print(f"Got: {entity.name} (token={response.concurrency_token})")
        for ident in entity.identifiers:
            print(f"- {ident.system_name}: {ident.identifier}")

        mapping = await systems.map(entity_id, target_system)
        if mapping.is_valid:
            print(f"{target_system} id: {mapping.message.identifier}")
        else:
            print(f"No {target_system} mapping ({mapping.status_code})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    asyncio.run(main(int(sys.argv[1]), sys.argv[2] if len(sys.argv) > 2 else "Endur"))
