#!/usr/bin/env python3
"""Actor interface example for didl.

A client built against a newer interface calls a server that still runs
the older one, and the server replies. Extra methods and trailing
optional arguments on either side do not break the exchange.
"""

from __future__ import annotations

from didl import ActorInterface, Fn, Nat, Opt, Record, Text, Vec

Note = Record({"id": Nat, "body": Text})
NoteV2 = Record({"id": Nat, "body": Text, "tags": Opt(Vec(Text))})

NotesV1 = ActorInterface(
    {
        "get": Fn([Nat], [Opt(Note)], ["query"]),
        "put": Fn([Note], []),
    }
)

NotesV2 = ActorInterface(
    {
        "get": Fn([Nat, Opt(Text)], [Opt(NoteV2)], ["query"]),
        "put": Fn([NoteV2], []),
        "count": Fn([], [Nat], ["query"]),
    }
)


def main() -> None:
    """Run the actor interface example."""
    print("=" * 60)
    print("didl Actor Interface Example")
    print("=" * 60)
    print()

    print("1. Interfaces...")
    print(f"   v1: {NotesV1!r}")
    print(f"   v2: {NotesV2!r}")
    print()

    print("2. New client stores a note on an old server...")
    call = NotesV2.encode_call("put", [{"id": 1, "body": "hello", "tags": [["greeting"]]}])
    print(f"   Call: {call.hex()}")
    print(f"   Server sees: {NotesV1.decode_call('put', call)}")
    print()

    print("3. Old client reads it back from a new server...")
    call = NotesV1.encode_call("get", [1])
    print(f"   Server sees arguments: {NotesV2.decode_call('get', call)}")
    reply = NotesV2.encode_reply("get", [[{"id": 1, "body": "hello", "tags": []}]])
    print(f"   Client sees reply: {NotesV1.decode_reply('get', reply)}")
    print()

    print("=" * 60)
    print("Example complete!")
    print("=" * 60)


if __name__ == "__main__":
    main()
