"""
iiifauth Demo Application

Walks through negotiating access to three simulated image services:
- an open service
- a service behind a click-through acknowledgement
- a service behind a full login

and shows that a second load reuses the stored tokens without prompting.
"""

import asyncio
import logging
import sys
from typing import List

from iiifauth.audit.logger import MemoryAuditLogger
from iiifauth.auth.collaborators import StoreBackedCollaborators
from iiifauth.auth.loader import ResourceLoader
from iiifauth.common.utils import generate_id
from iiifauth.core.config import LoaderOptions
from iiifauth.core.types import AccessToken, HTTPStatusCode
from iiifauth.resource.types import (
    CLICK_THROUGH_PROFILE,
    LOGIN_PROFILE,
    TOKEN_PROFILE,
    ExternalResource,
    StaticExternalResource,
)
from iiifauth.tokenstore.memory import MemoryAccessTokenStore


BASE_URL = "https://images.example.org/iiif"


def _auth_service(profile: str, name: str) -> dict:
    return {
        "@id": f"{BASE_URL}/auth/{name}",
        "profile": profile,
        "service": [{"@id": f"{BASE_URL}/auth/token", "profile": TOKEN_PROFILE}],
    }


class DemoCollaborators(StoreBackedCollaborators):
    """Collaborators that acknowledge and log in without a user."""

    def __init__(self, resources: List[StaticExternalResource]):
        super().__init__(MemoryAccessTokenStore())
        self.resources = resources
        self.issued: List[str] = []
        self.prompts: List[str] = []

    async def click_through(self, resource: ExternalResource) -> None:
        self.prompts.append(f"click-through {resource.id}")

    async def login(self, resource: ExternalResource) -> None:
        self.prompts.append(f"login {resource.id}")

    async def get_access_token(self, resource: ExternalResource) -> AccessToken:
        token = AccessToken(access_token=generate_id("demo-"), expires_in=3600)
        self.issued.append(token.access_token)
        for candidate in self.resources:
            candidate.accepted_tokens.add(token.access_token)
        return token


def build_resources() -> List[StaticExternalResource]:
    open_info = {"@id": f"{BASE_URL}/open", "width": 1000, "height": 800}
    return [
        StaticExternalResource(
            f"{BASE_URL}/open/info.json",
            responses=[(HTTPStatusCode.OK, open_info)],
        ),
        StaticExternalResource(
            f"{BASE_URL}/terms/info.json",
            responses=[(HTTPStatusCode.UNAUTHORIZED,
                        {"service": [_auth_service(CLICK_THROUGH_PROFILE, "terms")]})],
            authorized_data={"@id": f"{BASE_URL}/terms", "width": 4000},
        ),
        StaticExternalResource(
            f"{BASE_URL}/restricted/info.json",
            responses=[(HTTPStatusCode.UNAUTHORIZED,
                        {"service": [_auth_service(LOGIN_PROFILE, "login")]})],
            authorized_data={"@id": f"{BASE_URL}/restricted", "width": 6000},
        ),
    ]


async def run_demo() -> int:
    """Run the demo and return a process exit code"""
    print("iiifauth Demo Application")
    print("=" * 50)
    print()

    resources = build_resources()
    collaborators = DemoCollaborators(resources)
    audit_logger = MemoryAuditLogger()
    loader = ResourceLoader(collaborators, LoaderOptions(), audit_logger)

    print("Step 1: First load (no stored tokens)")
    print("-" * 40)
    for outcome in await loader.settle_all(resources):
        print(f"  - {outcome.resource.id}: {outcome.kind.value} (status {outcome.resource.status})")
    print(f"  - Prompts: {len(collaborators.prompts)}")
    print()

    print("Step 2: Reload (stored tokens reused)")
    print("-" * 40)
    prompts_before = len(collaborators.prompts)
    for outcome in await loader.settle_all(resources):
        print(f"  - {outcome.resource.id}: {outcome.kind.value} (status {outcome.resource.status})")
    print(f"  - New prompts: {len(collaborators.prompts) - prompts_before}")
    print()

    print("Step 3: Audit trail")
    print("-" * 40)
    for event in await audit_logger.get_events(event_type="remediation"):
        print(f"  - {event.resource_id}: {event.details['remediation']}")
    print()

    if len(collaborators.prompts) != prompts_before:
        print("✗ Reload prompted again")
        return 1

    print("Demo completed successfully!")
    return 0


def main() -> int:
    logging.basicConfig(level=logging.WARNING)
    try:
        return asyncio.run(run_demo())
    except KeyboardInterrupt:
        print("\nDemo interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
