#!/usr/bin/env python3
"""
Operator script for the Agent Provisioning API

Usage:
    python provision_agent.py register <company_id> [agent_type]
    python provision_agent.py orphans
    python provision_agent.py release <orphan_id>
"""

import os
import sys
import asyncio
import httpx

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")


async def check_ready() -> dict:
    """Check readiness endpoint"""
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/ready")
        return response.json()


async def register(company_id: int, agent_type: str):
    """Provision an agent for a company"""
    print(f"Provisioning {agent_type} agent for company {company_id}...")

    async with httpx.AsyncClient(timeout=120.0) as client:
        response = await client.post(
            f"{API_BASE_URL}/api/v1/agents/register",
            json={"company_id": company_id, "agent_type": agent_type}
        )

    data = response.json()
    if response.status_code == 200:
        print("Agent provisioned successfully!")
        print(f"  Agent ID: {data.get('agent_id')}")
        print(f"  Telephony number: {data.get('telephony_number')}")
    else:
        print(f"Provisioning failed: {response.status_code} {data.get('error_code')}")
        print(f"  {data.get('message')}")
        for orphan in data.get("details", {}).get("orphaned_resources", []):
            print(f"  Orphaned {orphan['resource_type']}: {orphan.get('resource_id')}")
    return data


async def list_orphans():
    """List orphaned resources awaiting reconciliation"""
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/api/v1/agents/orphans")

    orphans = response.json()
    print(f"Open orphans: {len(orphans)}")
    for orphan in orphans:
        print(
            f"  - #{orphan['orphan_id']} {orphan['resource_type']} "
            f"{orphan.get('resource_id')} {orphan.get('phone_number') or ''} "
            f"[{orphan['status']}] {orphan['reason']}"
        )
    return orphans


async def release(orphan_id: int):
    """Release an orphaned resource"""
    async with httpx.AsyncClient(timeout=60.0) as client:
        response = await client.post(f"{API_BASE_URL}/api/v1/agents/orphans/{orphan_id}/release")

    data = response.json()
    if response.status_code == 200:
        print(f"Orphan {orphan_id} released")
    else:
        print(f"Failed to release orphan {orphan_id}: {response.status_code}")
        print(f"  {data}")
    return data


async def main():
    if len(sys.argv) < 2:
        print(__doc__)
        return

    ready = await check_ready()
    if ready.get("status") != "ready":
        print(f"Warning: server is not fully ready: {ready.get('checks')}")

    command = sys.argv[1]
    if command == "register" and len(sys.argv) >= 3:
        agent_type = sys.argv[3] if len(sys.argv) > 3 else "LoadBoard"
        await register(int(sys.argv[2]), agent_type)
    elif command == "orphans":
        await list_orphans()
    elif command == "release" and len(sys.argv) >= 3:
        await release(int(sys.argv[2]))
    else:
        print(__doc__)


if __name__ == "__main__":
    asyncio.run(main())
