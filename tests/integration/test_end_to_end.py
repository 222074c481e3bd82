"""End-to-end integration tests."""

from __future__ import annotations

import enum
from typing import Annotated, Optional

import pytest
from pydantic import Field

from didl import (
    ActorInterface,
    ArityMismatch,
    FixedInt,
    Fn,
    IDLModel,
    Nat,
    Opt,
    Rec,
    Record,
    Service,
    Text,
    TypeMismatch,
    Variant,
    Vec,
    decode,
    encode,
)


class Role(enum.Enum):
    """Account role enum."""

    ADMIN = 1
    MEMBER = 2
    GUEST = 3


class Profile(IDLModel):
    """User profile, version 1."""

    user_id: int = Field(ge=0, description="User ID")
    display_name: str = Field(description="Name shown to other users")
    role: Role


class ProfileV2(IDLModel):
    """User profile, version 2: adds optional fields."""

    user_id: int = Field(ge=0)
    display_name: str
    role: Role
    email: Optional[str] = None
    login_count: Optional[Annotated[int, FixedInt(bits=32)]] = None


# Registry service, version 1 and a later revision with more methods and
# optional trailing arguments.
RegistryV1 = ActorInterface(
    {
        "lookup": Fn([Nat], [Opt(Profile.idl_type())], ["query"]),
        "register": Fn([Profile.idl_type()], [Nat]),
    }
)

RegistryV2 = ActorInterface(
    {
        "lookup": Fn([Nat, Opt(Text)], [Opt(ProfileV2.idl_type())], ["query"]),
        "register": Fn([ProfileV2.idl_type()], [Nat]),
        "count": Fn([], [Nat], ["query"]),
    }
)


class TestEndToEndWorkflow:
    """Test complete end-to-end workflows."""

    def test_call_and_reply_workflow(self) -> None:
        """Test a full call/reply exchange between matching interfaces."""
        # 1. Client encodes a call
        profile = Profile(user_id=7, display_name="ada", role=Role.ADMIN)
        call = RegistryV1.encode_call("register", [profile.to_idl()])
        assert call.startswith(b"DIDL")

        # 2. Server decodes it
        (received,) = RegistryV1.decode_call("register", call)
        assert Profile.from_idl(received) == profile

        # 3. Server replies, client decodes
        reply = RegistryV1.encode_reply("register", [7])
        assert RegistryV1.decode_reply("register", reply) == [7]

    def test_new_client_old_server(self) -> None:
        """A newer client's call is understood by an older server."""
        profile = ProfileV2(user_id=1, display_name="bob", role=Role.MEMBER, email="b@x", login_count=3)
        call = RegistryV2.encode_call("register", [profile.to_idl()])

        (received,) = RegistryV1.decode_call("register", call)
        assert Profile.from_idl(received) == Profile(user_id=1, display_name="bob", role=Role.MEMBER)

    def test_old_client_new_server(self) -> None:
        """An older client's call is understood by a newer server."""
        call = RegistryV1.encode_call("lookup", [1])
        assert RegistryV2.decode_call("lookup", call) == [1, []]

        profile = Profile(user_id=1, display_name="bob", role=Role.GUEST)
        call = RegistryV1.encode_call("register", [profile.to_idl()])
        (received,) = RegistryV2.decode_call("register", call)
        upgraded = ProfileV2.from_idl(received)
        assert upgraded.email is None
        assert upgraded.login_count is None

    def test_reply_with_optional_record(self) -> None:
        profile = ProfileV2(user_id=2, display_name="cy", role=Role.ADMIN, email="c@x")
        reply = RegistryV2.encode_reply("lookup", [[profile.to_idl()]])
        ((found,),) = RegistryV1.decode_reply("lookup", reply)
        assert Profile.from_idl(found).display_name == "cy"

        empty = RegistryV2.encode_reply("lookup", [[]])
        assert RegistryV1.decode_reply("lookup", empty) == [[]]

    def test_incompatible_change_detected(self) -> None:
        """Changing a field type is not a compatible evolution."""
        Broken = Record({"user_id": Text, "display_name": Text, "role": Variant({"ADMIN": Text})})
        data = encode([Broken], [{"user_id": "x", "display_name": "y", "role": {"ADMIN": ""}}])
        with pytest.raises(TypeMismatch):
            Profile.decode(data)

    def test_missing_required_argument(self) -> None:
        data = encode([], [])
        with pytest.raises(ArityMismatch):
            RegistryV1.decode_call("lookup", data)


class TestServiceReferences:
    """Test passing references to services and methods."""

    def test_service_reference_argument(self) -> None:
        Directory = ActorInterface(
            {"subscribe": Fn([RegistryV2.service_type(), Fn([Nat], [], ["oneway"])], [])}
        )
        call = Directory.encode_call("subscribe", [b"\x00\x2a", (b"\x00\x2a", "on_change")])
        assert Directory.decode_call("subscribe", call) == [b"\x00\x2a", (b"\x00\x2a", "on_change")]

    def test_service_reference_accepted_by_older_view(self) -> None:
        data = encode([RegistryV2.service_type()], [b"\x01"])
        assert decode([RegistryV1.service_type()], data) == [b"\x01"]
        assert decode([Service({})], data) == [b"\x01"]


class TestRecursiveStructures:
    """Test recursive types end to end."""

    @pytest.mark.parametrize("depth", [0, 1, 10, 100])
    def test_linked_list(self, linked_list_type: Rec, make_list, depth: int) -> None:
        value = make_list(depth)
        data = encode([linked_list_type, Text], [value, "tail"])
        assert decode([linked_list_type, Text], data) == [value, "tail"]

    def test_linked_list_skipped_by_empty_record(self, linked_list_type: Rec, make_list) -> None:
        data = encode([linked_list_type, Nat], [make_list(20), 5])
        # Reader that only cares about the second argument
        assert decode([Record({}), Nat], data) == [{}, 5]

    def test_file_system_tree(self) -> None:
        node = Rec()
        node.fill(
            Variant(
                {
                    "file": Record({"name": Text, "size": Nat}),
                    "dir": Record({"name": Text, "children": Vec(node)}),
                }
            )
        )
        tree = {
            "dir": {
                "name": "/",
                "children": [
                    {"file": {"name": "a.txt", "size": 10}},
                    {"dir": {"name": "empty", "children": []}},
                ],
            }
        }
        assert decode([node], encode([node], [tree])) == [tree]
