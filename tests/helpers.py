"""Test doubles shared by the test modules."""

from __future__ import annotations

from datetime import datetime

from services.generation_backend import GenerationCall
from services.usage_gate import UsageRecord, UsageStatus

ALLOWED = UsageStatus(
    can_make_request=True,
    remaining_messages=5,
    requires_auth=False,
    requires_payment=False,
)


def make_words(count: int, stem: str = "word") -> str:
    return " ".join(f"{stem}{index}" for index in range(count))


class ScriptedBackend:
    """Generation backend that replays canned outputs and remembers every call."""

    def __init__(self, *outputs: str | Exception) -> None:
        self._outputs = list(outputs)
        self.calls: list[GenerationCall] = []

    async def generate(self, call: GenerationCall) -> str:
        self.calls.append(call)
        output = self._outputs.pop(0)
        if isinstance(output, Exception):
            raise output
        return output


class FakeUsageGate:
    def __init__(
        self,
        status: UsageStatus = ALLOWED,
        consumed: bool = True,
        status_after: UsageStatus | None = None,
    ) -> None:
        self.status = status
        self.consumed = consumed
        self.status_after = status_after or status
        self.checks = 0
        self.records = 0
        self.seen_users: list[str | None] = []

    async def check_usage(self, user_id: str | None = None, guest_key: str = "guest") -> UsageStatus:
        self.checks += 1
        self.seen_users.append(user_id)
        return self.status

    async def record_usage(self, user_id: str | None = None, guest_key: str = "guest") -> UsageRecord:
        self.records += 1
        return UsageRecord(consumed=self.consumed, status=self.status_after)


class MutableClock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now
