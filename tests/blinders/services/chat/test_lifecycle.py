from __future__ import annotations

import asyncio

from blinders.services.chat.hub import ConnectionState


def test_authenticate_binds_and_replies(chat):
    async def scenario():
        return await chat.connect("alice")

    session, conn = asyncio.run(scenario())

    assert session.state is ConnectionState.authenticated
    assert conn.last("authenticated")["user"] == {
        "id": "alice",
        "username": "alice",
        "role": "shield-circle",
    }
    assert chat.hub.registry.connection_for("alice") is session
    assert chat.users.seen == ["alice"]


def test_bad_tokens_leave_connection_unauthenticated(chat):
    async def scenario():
        session, conn = await chat.connect()
        await chat.emit(session, "authenticate", {"token": "token-nobody"})
        await chat.emit(session, "authenticate", "expired")
        await chat.emit(session, "authenticate", {"token": "token-eve"})
        await chat.emit(session, "authenticate", {})
        return session, conn

    session, conn = asyncio.run(scenario())

    codes = [f["data"]["code"] for f in conn.events("auth-error")]
    assert codes == ["invalid_token", "token_expired", "banned_or_inactive", "invalid_token"]
    assert session.state is ConnectionState.unauthenticated
    assert chat.hub.registry.bound_users() == []
    assert conn.events("error") == []


def test_requests_before_authentication_are_rejected(chat):
    async def scenario():
        session, conn = await chat.connect()
        await chat.join(session, "shield-ops")
        await chat.say(session, "shield-ops", "hi")
        return conn

    conn = asyncio.run(scenario())

    assert [f["data"]["code"] for f in conn.events("error")] == [
        "unauthenticated",
        "unauthenticated",
    ]
    assert chat.messages.saved == []


def test_shield_circle_cannot_join_team_core_room(chat):
    async def scenario():
        session, conn = await chat.connect("alice")
        await chat.join(session, "core-hub")
        return conn

    conn = asyncio.run(scenario())

    assert conn.last("error")["code"] == "insufficient_role"
    assert not chat.hub.presence.is_present("core-hub", "alice")
    assert chat.hub.registry.rooms_for("alice") == set()


def test_shield_operations_admits_alice_and_bob_but_carol_is_denied_core(chat):
    async def scenario():
        alice, alice_conn = await chat.connect("alice")
        bob, bob_conn = await chat.connect("bob")
        carol, carol_conn = await chat.connect("carol")
        await chat.join(alice, "shield-ops")
        await chat.join(bob, "shield-ops")
        await chat.join(carol, "core-hub")
        return alice_conn, bob_conn, carol_conn

    alice_conn, bob_conn, carol_conn = asyncio.run(scenario())

    joined = bob_conn.last("joined-room")
    assert joined["roomId"] == "shield-ops"
    assert joined["roomName"] == "Shield Operations"
    assert joined["roomIcon"] == "🛡️"
    assert [u["username"] for u in joined["onlineUsers"]] == ["alice", "bob"]

    assert alice_conn.last("user-joined") == {
        "userId": "bob",
        "username": "bob",
        "role": "president",
        "roomId": "shield-ops",
    }
    assert bob_conn.events("user-joined") == []
    assert carol_conn.last("error")["code"] == "insufficient_role"
    assert chat.hub.registry.members_of("shield-ops") == {"alice", "bob"}


def test_join_errors_for_missing_inactive_and_malformed_rooms(chat):
    async def scenario():
        session, conn = await chat.connect("bob")
        await chat.join(session, "nope")
        await chat.join(session, "old-room")
        await chat.join(session, "../etc")
        await chat.emit(session, "join-room", None)
        return conn

    conn = asyncio.run(scenario())

    codes = [f["data"]["code"] for f in conn.events("error")]
    assert codes == ["room_not_found", "room_inactive", "validation_error", "validation_error"]
    assert chat.hub.registry.rooms_for("bob") == set()


def test_room_lookup_failure_is_retryable(chat):
    chat.rooms.fail_lookups = True

    async def scenario():
        session, conn = await chat.connect("bob")
        await chat.join(session, "shield-ops")
        return conn

    conn = asyncio.run(scenario())

    err = conn.last("error")
    assert err["code"] == "lookup_failed"
    assert err["retryable"] is True


def test_rejoin_resends_joined_room_without_rebroadcast(chat):
    async def scenario():
        alice, alice_conn = await chat.connect("alice")
        bob, _ = await chat.connect("bob")
        await chat.join(alice, "shield-ops")
        await chat.join(bob, "shield-ops")
        await chat.join(bob, "shield-ops")
        return alice_conn

    alice_conn = asyncio.run(scenario())

    assert len(alice_conn.events("user-joined")) == 1
    assert chat.hub.presence.online("shield-ops")[0].username == "alice"


def test_join_accepts_bare_room_id(chat):
    async def scenario():
        session, conn = await chat.connect("carol")
        await chat.emit(session, "join-room", "study-hall")
        return conn

    conn = asyncio.run(scenario())
    assert conn.last("joined-room")["roomName"] == "Study Hall"


def test_leave_twice_yields_one_left_room_and_no_error(chat):
    async def scenario():
        alice, alice_conn = await chat.connect("alice")
        bob, bob_conn = await chat.connect("bob")
        await chat.join(alice, "shield-ops")
        await chat.join(bob, "shield-ops")
        await chat.emit(alice, "leave-room", {"roomId": "shield-ops"})
        await chat.emit(alice, "leave-room", {"roomId": "shield-ops"})
        return alice_conn, bob_conn

    alice_conn, bob_conn = asyncio.run(scenario())

    assert alice_conn.events("left-room") == [
        {"event": "left-room", "data": {"roomId": "shield-ops"}}
    ]
    assert alice_conn.events("error") == []
    assert bob_conn.last("user-left") == {
        "userId": "alice",
        "username": "alice",
        "roomId": "shield-ops",
    }
    assert len(bob_conn.events("user-left")) == 1
    assert not chat.hub.presence.is_present("shield-ops", "alice")


def test_typing_goes_to_other_members_only(chat):
    async def scenario():
        alice, alice_conn = await chat.connect("alice")
        bob, bob_conn = await chat.connect("bob")
        await chat.join(alice, "shield-ops")
        await chat.join(bob, "shield-ops")
        await chat.emit(alice, "typing", {"roomId": "shield-ops", "isTyping": True})
        return alice_conn, bob_conn

    alice_conn, bob_conn = asyncio.run(scenario())

    assert bob_conn.last("user-typing") == {
        "userId": "alice",
        "username": "alice",
        "isTyping": True,
        "roomId": "shield-ops",
    }
    assert alice_conn.events("user-typing") == []
    assert chat.hub.presence.typing_in("shield-ops") == {"alice"}


def test_typing_outside_a_joined_room_is_rejected(chat):
    async def scenario():
        session, conn = await chat.connect("bob")
        await chat.emit(session, "typing", {"roomId": "shield-ops", "isTyping": True})
        await chat.emit(session, "typing", {"roomId": "shield-ops"})
        return conn

    conn = asyncio.run(scenario())

    assert [f["data"]["code"] for f in conn.events("error")] == [
        "not_joined",
        "validation_error",
    ]


def test_second_connection_supersedes_first(chat):
    async def scenario():
        c1, conn1 = await chat.connect("alice")
        bob, bob_conn = await chat.connect("bob")
        await chat.join(c1, "shield-ops")
        await chat.join(bob, "shield-ops")
        c2, conn2 = await chat.connect("alice")
        await chat.say(bob, "shield-ops", "anyone there?")
        # Late close of the superseded socket must not unbind the new one.
        await chat.controller.close(c1)
        return c1, conn1, c2, conn2, bob_conn

    c1, conn1, c2, conn2, bob_conn = asyncio.run(scenario())

    assert chat.hub.registry.connection_for("alice") is c2
    assert conn1.last("error")["code"] == "session_replaced"
    assert conn1.events("new-message") == []
    assert conn2.events("new-message") == []
    assert bob_conn.last("user-left")["userId"] == "alice"
    assert bob_conn.events("user-disconnected") == []
    assert chat.hub.registry.rooms_for("alice") == set()
    assert c2.state is ConnectionState.authenticated


def test_reauthenticating_as_another_user_drops_old_identity(chat):
    async def scenario():
        session, conn = await chat.connect("alice")
        bob, bob_conn = await chat.connect("bob")
        await chat.join(session, "shield-ops")
        await chat.join(bob, "shield-ops")
        await chat.emit(session, "authenticate", {"token": "token-dave"})
        return session, bob_conn

    session, bob_conn = asyncio.run(scenario())

    assert session.user.id == "dave"
    assert chat.hub.registry.connection_for("alice") is None
    assert chat.hub.registry.connection_for("dave") is session
    assert bob_conn.last("user-left")["userId"] == "alice"


def test_close_notifies_each_room_once_and_clears_state(chat):
    async def scenario():
        bob, bob_conn = await chat.connect("bob")
        carol, carol_conn = await chat.connect("carol")
        dave, dave_conn = await chat.connect("dave")
        for room in ("shield-ops", "study-hall", "core-hub"):
            await chat.join(bob, room)
        await chat.join(carol, "shield-ops")
        await chat.join(dave, "study-hall")
        await chat.controller.close(bob)
        await chat.controller.close(bob)
        return bob, carol_conn, dave_conn

    bob, carol_conn, dave_conn = asyncio.run(scenario())

    assert carol_conn.events("user-disconnected") == [
        {
            "event": "user-disconnected",
            "data": {"userId": "bob", "username": "bob", "roomId": "shield-ops"},
        }
    ]
    assert [f["data"]["roomId"] for f in dave_conn.events("user-disconnected")] == ["study-hall"]
    assert chat.hub.registry.rooms_for("bob") == set()
    assert chat.hub.registry.connection_for("bob") is None
    assert not chat.hub.presence.is_present("core-hub", "bob")
    assert bob.state is ConnectionState.closed
    assert chat.hub.session_count() == 2


def test_frames_after_close_are_ignored(chat):
    async def scenario():
        session, conn = await chat.connect("alice")
        await chat.controller.close(session)
        before = len(conn.frames)
        await chat.join(session, "shield-ops")
        return conn, before

    conn, before = asyncio.run(scenario())
    assert len(conn.frames) == before


def test_malformed_and_unknown_frames_yield_validation_errors(chat):
    async def scenario():
        session, conn = await chat.connect("alice")
        await chat.controller.handle(session, None)
        await chat.controller.handle(session, {"data": {}})
        await chat.emit(session, "dance")
        return session, conn

    session, conn = asyncio.run(scenario())

    errors = conn.events("error")
    assert [f["data"]["code"] for f in errors] == ["validation_error"] * 3
    assert "dance" in errors[-1]["data"]["error"]
    assert session.state is ConnectionState.authenticated


def test_peer_write_failure_does_not_tear_down_peer(chat):
    async def scenario():
        alice, _ = await chat.connect("alice")
        bob, _ = await chat.connect("bob")
        await chat.join(alice, "shield-ops")
        await chat.join(bob, "shield-ops")
        bob.connection.fail = True
        await chat.say(alice, "shield-ops", "hello")
        return bob

    bob = asyncio.run(scenario())

    assert chat.hub.registry.connection_for("bob") is bob
    assert chat.hub.registry.is_member("bob", "shield-ops")


def test_auth_errors_carry_retryable_flag(chat):
    def unavailable(token):
        raise ConnectionError("user store down")

    async def scenario():
        session, conn = await chat.connect()
        await chat.emit(session, "authenticate", {"token": "token-nobody"})
        chat.controller.verifier.verify_token = unavailable
        await chat.emit(session, "authenticate", {"token": "token-alice"})
        return session, conn

    session, conn = asyncio.run(scenario())

    first, second = [f["data"] for f in conn.events("auth-error")]
    assert first["code"] == "invalid_token"
    assert first["retryable"] is False
    assert second["code"] == "lookup_failed"
    assert second["retryable"] is True
    assert session.state is ConnectionState.unauthenticated
