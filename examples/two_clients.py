"""Two clients in one room - presence, typing indicators and messages.

Demonstrates the coordination engine end to end with the in-memory
backends. Shows:
- Presence sets replaced on every sync
- Typing indicators propagated, debounced and expired
- Optimistic sends merged into the peer's view exactly once
- A failed send rolled back with the draft restored

Run with:
    uv run python examples/two_clients.py
"""

from __future__ import annotations

import asyncio
import logging

from chatpulse import (
    ChatClient,
    ChatConfig,
    ChatState,
    InMemoryAuthProvider,
    InMemoryMessageStore,
    InMemoryTransport,
    Session,
    StoreError,
)


class FlakyStore(InMemoryMessageStore):
    """Rejects the next write when armed."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_next = False

    async def insert_message(self, message):  # type: ignore[no-untyped-def]
        if self.fail_next:
            self.fail_next = False
            raise StoreError("simulated outage")
        return await super().insert_message(message)


def render(name: str, state: ChatState) -> None:
    typing = ", ".join(u.display_name for u in state.typing_users) or "-"
    print(
        f"  [{name}] {state.channel_state:<12} online={sorted(state.online_users)} "
        f"typing={typing} messages={len(state.messages)} draft={state.draft!r}"
    )


async def main() -> None:
    logging.basicConfig(level=logging.WARNING)
    store = FlakyStore()
    transport = InMemoryTransport()
    config = ChatConfig()

    alice = Session.from_user_metadata("u-alice", {"full_name": "Alice", "email": "a@x.io"})
    bob = Session.from_user_metadata("u-bob", {"name": "Bob"})
    a = ChatClient(InMemoryAuthProvider(alice), store, transport, config)
    b = ChatClient(InMemoryAuthProvider(bob), store, transport, config)

    print("Both sign in:")
    await a.start()
    await b.start()
    await asyncio.sleep(0.05)
    render("alice", a.state)
    render("bob", b.state)

    print("\nAlice types:")
    for text in ("h", "hi", "hi b", "hi bob"):
        await a.input_changed(text)
        await asyncio.sleep(0.2)
    render("bob", b.state)

    print("\nAlice sends:")
    await a.send()
    await asyncio.sleep(0.05)
    render("alice", a.state)
    render("bob", b.state)

    print("\nBob's send fails and is rolled back:")
    store.fail_next = True
    await b.input_changed("are you there?")
    await b.send()
    render("bob", b.state)

    print("\nAlice signs out:")
    await a.sign_out()
    await asyncio.sleep(0.05)
    render("bob", b.state)

    for msg in b.state.messages:
        print(f"  {msg.sent_at:%H:%M:%S} {msg.display_name}: {msg.body}")

    await b.close()
    await transport.close()


if __name__ == "__main__":
    asyncio.run(main())
