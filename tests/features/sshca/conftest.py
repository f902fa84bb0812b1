from datetime import datetime, timedelta, timezone

import pytest

from features.sshca.application.services import SSHCASettings, build_services
from features.sshca.infrastructure.storage import InMemoryStorage


class FrozenClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@pytest.fixture
def clock():
    return FrozenClock(datetime(2024, 5, 1, 12, 0, 0, 250000, tzinfo=timezone.utc))


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def services(storage, clock):
    settings = SSHCASettings(
        default_lease_ttl=timedelta(hours=24),
        max_lease_ttl=timedelta(hours=48),
        clock_skew=timedelta(seconds=30),
        serial_retry_limit=3,
    )
    return build_services(storage, settings, clock=clock)


@pytest.fixture
def configured_services(services, ca_keys):
    from features.sshca.application.dto import CAConfigInput
    from features.sshca.application.use_cases import ConfigureCAUseCase

    ConfigureCAUseCase(services).execute(CAConfigInput(**ca_keys))
    return services
