import anyio

from app.services.notification_hub import NotificationHub


class FakeSocket:
    def __init__(self, *, broken: bool = False) -> None:
        self.accepted = False
        self.broken = broken
        self.sent: list[dict] = []

    async def accept(self) -> None:
        self.accepted = True

    async def send_json(self, payload: dict) -> None:
        if self.broken:
            raise RuntimeError("socket closed")
        self.sent.append(payload)


def test_publish_reaches_every_socket_of_the_recipient_only():
    async def scenario():
        hub = NotificationHub()
        laptop, phone, other = FakeSocket(), FakeSocket(), FakeSocket()
        assert await hub.connect("inst-a", laptop) == 1
        assert await hub.connect("inst-a", phone) == 2
        assert await hub.connect("inst-b", other) == 1

        delivered = await hub.publish("inst-a", {"event": "notification.created"})
        assert delivered == 2
        assert laptop.accepted and phone.accepted
        assert laptop.sent == phone.sent == [{"event": "notification.created"}]
        assert other.sent == []

        await hub.disconnect("inst-a", laptop)
        assert await hub.publish("inst-a", {"event": "again"}) == 1
        assert await hub.publish("nobody", {"event": "again"}) == 0

    anyio.run(scenario)


def test_broken_sockets_are_pruned_after_a_failed_send():
    async def scenario():
        hub = NotificationHub()
        healthy, broken = FakeSocket(), FakeSocket(broken=True)
        await hub.connect("inst-a", healthy)
        await hub.connect("inst-a", broken)

        assert await hub.publish("inst-a", {"event": "first"}) == 1
        broken.broken = False
        assert await hub.publish("inst-a", {"event": "second"}) == 1
        assert broken.sent == []
        assert healthy.sent == [{"event": "first"}, {"event": "second"}]

        await hub.disconnect("inst-a", healthy)
        assert await hub.publish("inst-a", {"event": "third"}) == 0

    anyio.run(scenario)
