from __future__ import annotations

import pytest

from configuration import Configuration
from fairhub.endpoint_service import EndpointService
from fairhub.fair_hub import FairHub
from fairhub.token_pool import TokenPool
from tests.hub_fakes import FakeSession, RecordingSleep


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def service(session: FakeSession, sleeps: RecordingSleep) -> EndpointService:
    pool = TokenPool(["token-a"], session_factory=lambda: session)
    return EndpointService(pool, graphql_url="https://api.github.com/graphql", max_attempts=3,
                           interleave_delay=1.0, sleep=sleeps)


@pytest.fixture
def config() -> Configuration:
    return Configuration(
        fair_hub="github.com/appfair",
        hub_tokens=["token-a"],
        fairseal_issuer="fairbot",
        phase_delay=0,
        interleave_delay=0,
    )


@pytest.fixture
def hub(config: Configuration, service: EndpointService) -> FairHub:
    return FairHub(config, service=service)

