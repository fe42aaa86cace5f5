from __future__ import annotations

import asyncio
from typing import Optional

from core.errors import MailError, StoreError
from core.models import DeliveryOutcome, Entry, MailMessage, MailReceipt, Match, Subscriber
from core.notifications import NotificationPipeline, build_mail


class FakeStore:
    def __init__(self, broken_keys: Optional[set[str]] = None) -> None:
        self.records: dict[str, bool] = {}
        self.broken_keys = broken_keys or set()
        self.writes: list[str] = []

    def get(self, key: str) -> Optional[bool]:
        if key in self.broken_keys:
            raise StoreError("disk on fire")
        return self.records.get(key)

    def put(self, key: str, value: bool) -> None:
        if key in self.broken_keys:
            raise StoreError("disk on fire")
        self.writes.append(key)
        self.records[key] = value


class FakeMailer:
    def __init__(self, failing: Optional[set[str]] = None, accept: bool = True) -> None:
        self.sent: list[MailMessage] = []
        self.failing = failing or set()
        self.accept = accept

    async def send(self, message: MailMessage) -> MailReceipt:
        if message.to in self.failing:
            raise MailError(f"rejected {message.to}")
        self.sent.append(message)
        accepted = (message.to,) if self.accept else ()
        return MailReceipt(accepted=accepted, message_id="<1@test>")


def _match(keyword: str = "outage", link: str = "https://x.com/1") -> Match:
    return Match(keyword=keyword, entry=Entry(title="Incident", link=link, description="outage"))


def test_build_mail_layout() -> None:
    mail = build_mail("Alerts", _match(), Subscriber("a@x.com"))
    assert mail.to == "a@x.com"
    assert mail.subject == "Alerts [outage]: Incident"
    assert mail.text == "https://x.com/1"


def test_fan_out_to_every_subscriber() -> None:
    store = FakeStore()
    mailer = FakeMailer()
    pipeline = NotificationPipeline("Alerts", store, mailer)
    subscribers = [Subscriber("a@x.com"), Subscriber("b@x.com")]
    matches = [_match("outage"), _match("breach")]

    results = asyncio.run(pipeline.notify(matches, subscribers))

    assert len(results) == 4
    assert all(r.outcome is DeliveryOutcome.SENT for r in results)
    assert sorted(m.to for m in mailer.sent) == ["a@x.com", "a@x.com", "b@x.com", "b@x.com"]


def test_known_key_is_not_delivered() -> None:
    store = FakeStore()
    store.records["a@x.comhttps://x.com/1outage"] = True
    mailer = FakeMailer()
    pipeline = NotificationPipeline("Alerts", store, mailer)

    [result] = asyncio.run(pipeline.notify([_match()], [Subscriber("a@x.com")]))

    assert result.outcome is DeliveryOutcome.ALREADY_NOTIFIED
    assert mailer.sent == []
    assert pipeline.commit([result]) == (0, 0)


def test_mail_failure_is_isolated_and_not_committed() -> None:
    store = FakeStore()
    mailer = FakeMailer(failing={"bad@x.com"})
    pipeline = NotificationPipeline("Alerts", store, mailer)

    results = asyncio.run(
        pipeline.notify([_match()], [Subscriber("bad@x.com"), Subscriber("good@x.com")])
    )
    outcomes = {r.subscriber.email: r.outcome for r in results}
    assert outcomes == {"bad@x.com": DeliveryOutcome.FAILED, "good@x.com": DeliveryOutcome.SENT}
    failed = next(r for r in results if r.subscriber.email == "bad@x.com")
    assert isinstance(failed.error, MailError)

    assert pipeline.commit(results) == (1, 0)
    assert store.writes == ["good@x.comhttps://x.com/1outage"]


def test_store_lookup_failure_fails_only_that_pair() -> None:
    store = FakeStore(broken_keys={"a@x.comhttps://x.com/1outage"})
    mailer = FakeMailer()
    pipeline = NotificationPipeline("Alerts", store, mailer)

    results = asyncio.run(pipeline.notify([_match()], [Subscriber("a@x.com"), Subscriber("b@x.com")]))

    assert [r.outcome for r in results] == [DeliveryOutcome.FAILED, DeliveryOutcome.SENT]
    assert [m.to for m in mailer.sent] == ["b@x.com"]


def test_commit_requires_accepted_recipients() -> None:
    store = FakeStore()
    pipeline = NotificationPipeline("Alerts", store, FakeMailer(accept=False))

    results = asyncio.run(pipeline.notify([_match()], [Subscriber("a@x.com")]))

    assert results[0].outcome is DeliveryOutcome.SENT
    assert pipeline.commit(results) == (0, 0)
    assert store.records == {}


def test_commit_write_failure_does_not_stop_other_writes() -> None:
    store = FakeStore()
    pipeline = NotificationPipeline("Alerts", store, FakeMailer())
    results = asyncio.run(pipeline.notify([_match()], [Subscriber("a@x.com"), Subscriber("b@x.com")]))

    store.broken_keys.add("a@x.comhttps://x.com/1outage")
    assert pipeline.commit(results) == (1, 1)
    assert store.records == {"b@x.comhttps://x.com/1outage": True}


def test_identical_matches_are_notified_once() -> None:
    mailer = FakeMailer()
    pipeline = NotificationPipeline("Alerts", FakeStore(), mailer)

    results = asyncio.run(pipeline.notify([_match(), _match()], [Subscriber("a@x.com")]))

    assert len(results) == 1
    assert len(mailer.sent) == 1


def test_no_matches_no_work() -> None:
    pipeline = NotificationPipeline("Alerts", FakeStore(), FakeMailer())
    assert asyncio.run(pipeline.notify([], [Subscriber("a@x.com")])) == []


class BrokenMailer(FakeMailer):
    async def send(self, message: MailMessage) -> MailReceipt:
        if message.to == "crash@x.com":
            raise ValueError("unexpected")
        return await super().send(message)


def test_unexpected_mailer_error_fails_only_that_pair() -> None:
    store = FakeStore()
    mailer = BrokenMailer()
    pipeline = NotificationPipeline("Alerts", store, mailer)

    results = asyncio.run(pipeline.notify([_match()], [Subscriber("crash@x.com"), Subscriber("b@x.com")]))

    assert [r.outcome for r in results] == [DeliveryOutcome.FAILED, DeliveryOutcome.SENT]
    assert isinstance(results[0].error, ValueError)
    assert pipeline.commit(results) == (1, 0)
    assert list(store.records) == ["b@x.comhttps://x.com/1outage"]


def test_subject_never_contains_line_breaks() -> None:
    match = Match(keyword="outage", entry=Entry(title="Line one\r\nline two", link="https://x.com/1", description="d"))
    mail = build_mail("Alerts\n", match, Subscriber("a@x.com"))
    assert mail.subject == "Alerts [outage]: Line one line two"
